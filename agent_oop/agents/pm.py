"""Project manager agent: plans, breakdowns, estimates and sprint plans as JSON."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from agent_oop.agent import BaseAgent
from agent_oop.logs import AgentLogger, truncate
from agent_oop.registry import EmptyInput, task, tool
from agent_oop.runtime import ChatModel, RuntimeResult
from agent_oop.utils import parse_json_response

log = AgentLogger(__name__, "PM")

PM_SYSTEM_PROMPT = """You are a senior technical project manager and product owner.

You plan software work so that a team can execute it:
- Start from the user and the problem being solved; features without clear user value are deprioritized.
- Identify the MVP first, then the iterations that follow it.
- Name risks early and give each a mitigation.
- Map dependencies and the critical path; call out what can run in parallel.
- Estimate realistically: first estimates run 50-100% optimistic, and integration, testing and polish take real time.
- Break work into epics (1-4 weeks), stories (1-5 days) and tasks (hours).
- Write acceptance criteria that are testable.

Answer in the exact JSON format you are asked for, inside a ```json fenced block."""

Priority = Literal["critical", "high", "medium", "low"]
Level = Literal["low", "medium", "high"]


class _PlanModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class PlanTask(_PlanModel):
    id: str
    title: str
    description: str = ""
    estimate: str = ""
    priority: Priority = "medium"
    dependencies: List[str] = Field(default_factory=list)
    acceptance_criteria: List[str] = Field(default_factory=list)
    assignee: Optional[str] = None
    status: Literal["todo", "in_progress", "review", "done"] = "todo"


class Epic(_PlanModel):
    id: str
    title: str
    description: str = ""
    tasks: List[PlanTask] = Field(default_factory=list)
    milestone: Optional[str] = None


class Milestone(_PlanModel):
    id: str
    title: str
    description: str = ""
    target_date: Optional[str] = None
    deliverables: List[str] = Field(default_factory=list)
    epic_ids: List[str] = Field(default_factory=list)


class Risk(_PlanModel):
    id: str
    description: str
    probability: Level = "medium"
    impact: Level = "medium"
    mitigation: str = ""
    owner: Optional[str] = None


class ProjectPlan(_PlanModel):
    name: str
    description: str = ""
    goals: List[str] = Field(default_factory=list)
    success_criteria: List[str] = Field(default_factory=list)
    assumptions: List[str] = Field(default_factory=list)
    epics: List[Epic] = Field(default_factory=list)
    milestones: List[Milestone] = Field(default_factory=list)
    risks: List[Risk] = Field(default_factory=list)
    mvp_scope: List[str] = Field(default_factory=list)
    future_iterations: List[str] = Field(default_factory=list)
    estimated_duration: str = ""
    team_requirements: List[str] = Field(default_factory=list)

    @property
    def task_count(self) -> int:
        return sum(len(epic.tasks) for epic in self.epics)


# ----- output formats shown to the model
PLAN_FORMAT = {
    "name": "Project Name",
    "description": "2-3 sentence project description",
    "goals": ["Goal 1"],
    "successCriteria": ["Measurable criterion"],
    "assumptions": ["Assumption"],
    "epics": [
        {
            "id": "E1",
            "title": "Epic title",
            "description": "Epic description",
            "milestone": "M1",
            "tasks": [
                {
                    "id": "E1-T1",
                    "title": "Task title",
                    "description": "Detailed task description",
                    "estimate": "2-3 days",
                    "priority": "high",
                    "dependencies": [],
                    "acceptanceCriteria": ["AC1"],
                    "status": "todo",
                }
            ],
        }
    ],
    "milestones": [{"id": "M1", "title": "Milestone", "description": "", "deliverables": [], "epicIds": ["E1"]}],
    "risks": [{"id": "R1", "description": "Risk", "probability": "medium", "impact": "high", "mitigation": ""}],
    "mvpScope": ["Feature in MVP"],
    "futureIterations": ["V2 feature"],
    "estimatedDuration": "X weeks",
    "teamRequirements": ["1 Backend Developer"],
}

BREAKDOWN_FORMAT = {
    "feature": "Feature name",
    "summary": "What this feature does",
    "userStories": ["As a [user], I want [goal] so that [benefit]"],
    "tasks": [
        {
            "id": "T1",
            "title": "Task title",
            "description": "What needs to be done",
            "estimate": "X hours/days",
            "priority": "high|medium|low",
            "dependencies": [],
            "acceptanceCriteria": ["Given X, when Y, then Z"],
            "technicalNotes": "Implementation hints",
        }
    ],
    "totalEstimate": "X days",
    "risks": ["Potential risk"],
    "outOfScope": ["What this does NOT include"],
}

ESTIMATE_FORMAT = {
    "workSummary": "Brief summary",
    "estimate": {"optimistic": "X days", "realistic": "Y days", "pessimistic": "Z days"},
    "breakdown": [{"phase": "Phase name", "effort": "X days", "description": "What this includes"}],
    "assumptions": ["Assumption"],
    "riskFactors": ["Factor that could increase the estimate"],
    "recommendation": "Recommended timeline with buffer",
}

PRIORITIZATION_FORMAT = {
    "framework": "RICE, MoSCoW, Value/Effort, ...",
    "prioritizedItems": [
        {"rank": 1, "item": "Item", "score": 85, "rationale": "Why", "category": "must-have|should-have|nice-to-have"}
    ],
    "recommendations": {"doFirst": [], "doNext": [], "doLater": [], "dontDo": []},
    "tradeoffs": "Key tradeoffs",
}

USER_STORY_FORMAT = {
    "title": "User story title",
    "userStory": "As a [user type], I want [goal], so that [benefit]",
    "description": "Detailed description",
    "acceptanceCriteria": ["GIVEN [context], WHEN [action], THEN [outcome]"],
    "scenarios": [{"name": "Scenario", "steps": ["Step 1"], "expectedResult": "What should happen"}],
    "outOfScope": [],
    "dependencies": [],
    "technicalNotes": "Implementation hints",
    "testingNotes": "How QA should test this",
}

RISKS_FORMAT = {
    "riskSummary": "Overall risk assessment",
    "risks": [
        {
            "id": "R1",
            "category": "technical|resource|schedule|scope|external",
            "title": "Risk title",
            "description": "Detailed description",
            "probability": "low|medium|high",
            "impact": "low|medium|high",
            "triggers": ["Warning signs"],
            "mitigation": "How to reduce likelihood",
            "contingency": "Plan if the risk occurs",
            "owner": "Who monitors this",
        }
    ],
    "topRisks": ["R1"],
    "recommendations": "Risk management recommendations",
}

SPRINT_FORMAT = {
    "sprintGoal": "What this sprint achieves",
    "sprintDuration": "N days",
    "committedTasks": [{"taskId": "E1-T1", "title": "Task", "estimate": "X days", "assignee": "Role", "priority": "high"}],
    "stretchGoals": [],
    "dependencies": [],
    "risks": [],
    "demoScope": "What is shown at sprint review",
}


def build_prompt(task_text: str, sections: Dict[str, Optional[str]], output_format: Dict[str, Any]) -> str:
    """Assemble a task prompt; sections with empty values are left out."""
    parts = ["## Your Task", task_text]
    for title, body in sections.items():
        if body:
            parts.append(f"### {title}:\n{body}")
    parts.append("### Required Output\n```json\n" + json.dumps(output_format, indent=2) + "\n```")
    return "\n\n".join(parts)


class PlanInput(BaseModel):
    specification: str = Field(description="The user's specification, idea, or requirements for the project")
    project_name: Optional[str] = Field(default=None, description="Optional name for the project")
    constraints: Optional[str] = Field(default=None, description="Timeline, budget, team size, tech stack")


class FeatureBreakdownInput(BaseModel):
    feature: str = Field(description="The feature to break down")
    context: Optional[str] = Field(default=None, description="Additional context about the project or tech stack")


class EstimateInput(BaseModel):
    work_description: str = Field(description="Description of the work to estimate")
    team_context: Optional[str] = Field(default=None, description="Team size, skill level, familiarity with tech")


class BacklogInput(BaseModel):
    items: List[str] = Field(min_length=1, description="Features or tasks to prioritize")
    criteria: Optional[str] = Field(default=None, description="Prioritization criteria, e.g. 'user impact'")


class UserStoryInput(BaseModel):
    feature: str
    user_type: Optional[str] = Field(default=None, description="e.g. 'admin', 'customer', 'developer'")


class RisksInput(BaseModel):
    project_description: str
    known_constraints: Optional[str] = None


class SprintInput(BaseModel):
    sprint_duration: int = Field(default=10, ge=1, description="Sprint duration in days")
    team_capacity: Optional[int] = Field(default=None, ge=1, description="Team capacity in person-days")
    focus_areas: Optional[List[str]] = Field(default=None, description="Epic IDs or areas to focus on")


class PMAgent(BaseAgent):
    system_prompt = PM_SYSTEM_PROMPT

    def __init__(self, model: Union[ChatModel, str, None] = None) -> None:
        super().__init__(model)
        self.current_plan: Optional[ProjectPlan] = None

    async def _ask_json(self, name: str, prompt: str) -> Union[Dict[str, Any], List[Any]]:
        content = await self.model.complete(prompt, system=PM_SYSTEM_PROMPT)
        data = parse_json_response(content)
        if data is None:
            log.failure(name, "Failed to parse JSON response")
            return {"error": f"Failed to parse {name} response", "raw_response": content}
        return data

    @task(
        "createProjectPlan",
        "Create a comprehensive project plan from a specification or idea: epics, tasks, milestones and risks.",
        input_schema=PlanInput,
    )
    async def create_project_plan(self, payload: PlanInput) -> Dict[str, Any]:
        log.tool("createProjectPlan", {"project_name": payload.project_name, "spec_length": len(payload.specification)})
        prompt = build_prompt(
            "Create a comprehensive project plan for the following specification. "
            "Be thorough but practical; focus on actionable tasks with clear acceptance criteria.",
            {
                "Specification": payload.specification,
                "Project Name": payload.project_name,
                "Constraints": payload.constraints,
            },
            PLAN_FORMAT,
        )
        data = await self._ask_json("createProjectPlan", prompt)
        if not isinstance(data, dict) or "error" in data:
            return data if isinstance(data, dict) else {"error": "Expected a JSON object for the plan"}
        try:
            plan = ProjectPlan.model_validate(data)
        except ValidationError as exc:
            log.failure("createProjectPlan", f"{exc.error_count()} validation error(s)")
            return {"error": "Failed to generate valid project plan", "details": exc.errors(include_url=False)}

        self.current_plan = plan
        log.success(
            "createProjectPlan",
            f"{len(plan.epics)} epics, {plan.task_count} tasks, {len(plan.milestones)} milestones",
        )
        return plan.model_dump(by_alias=True)

    @task(
        "breakdownFeature",
        "Break down a single feature into detailed tasks with estimates and acceptance criteria",
        input_schema=FeatureBreakdownInput,
    )
    async def breakdown_feature(self, payload: FeatureBreakdownInput) -> Any:
        prompt = build_prompt(
            "Break down the following feature into detailed, implementable tasks. Be specific enough "
            "that a developer could implement each task without further clarification.",
            {"Feature": payload.feature, "Context": payload.context},
            BREAKDOWN_FORMAT,
        )
        return await self._ask_json("breakdownFeature", prompt)

    @task("estimateEffort", "Estimate the effort required for a piece of work", input_schema=EstimateInput)
    async def estimate_effort(self, payload: EstimateInput) -> Any:
        prompt = build_prompt(
            "Provide an effort estimate for the following work.",
            {"Work Description": payload.work_description, "Team Context": payload.team_context},
            ESTIMATE_FORMAT,
        )
        return await self._ask_json("estimateEffort", prompt)

    @task(
        "prioritizeBacklog",
        "Prioritize a list of features or tasks using a structured framework",
        input_schema=BacklogInput,
    )
    async def prioritize_backlog(self, payload: BacklogInput) -> Any:
        items = "\n".join(f"{i}. {item}" for i, item in enumerate(payload.items, start=1))
        prompt = build_prompt(
            "Prioritize the following items using a structured framework.",
            {
                "Items to Prioritize": items,
                "Prioritization Criteria": payload.criteria or "Use the RICE framework (Reach, Impact, Confidence, Effort)",
            },
            PRIORITIZATION_FORMAT,
        )
        return await self._ask_json("prioritizeBacklog", prompt)

    @task(
        "writeUserStory",
        "Write a detailed user story with acceptance criteria for a feature",
        input_schema=UserStoryInput,
    )
    async def write_user_story(self, payload: UserStoryInput) -> Any:
        prompt = build_prompt(
            "Write a comprehensive user story for the following feature.",
            {"Feature": payload.feature, "Primary User": payload.user_type},
            USER_STORY_FORMAT,
        )
        return await self._ask_json("writeUserStory", prompt)

    @task("identifyRisks", "Identify and analyze risks for a project or feature", input_schema=RisksInput)
    async def identify_risks(self, payload: RisksInput) -> Any:
        prompt = build_prompt(
            "Identify and analyze risks for the following project.",
            {"Project Description": payload.project_description, "Known Constraints": payload.known_constraints},
            RISKS_FORMAT,
        )
        return await self._ask_json("identifyRisks", prompt)

    @tool("getCurrentPlan", "Get the current project plan if one has been created")
    def get_current_plan(self, payload: Optional[EmptyInput] = None) -> Dict[str, Any]:
        if self.current_plan is None:
            return {"error": "No project plan has been created yet. Use createProjectPlan first."}
        return self.current_plan.model_dump(by_alias=True)

    @task(
        "generateSprintPlan",
        "Generate a sprint plan from the current project plan",
        input_schema=SprintInput,
    )
    async def generate_sprint_plan(self, payload: SprintInput) -> Any:
        if self.current_plan is None:
            return {"error": "No project plan exists. Create one first with createProjectPlan."}
        parameters = [f"- Duration: {payload.sprint_duration} days"]
        if payload.team_capacity:
            parameters.append(f"- Team Capacity: {payload.team_capacity} person-days")
        if payload.focus_areas:
            parameters.append(f"- Focus Areas: {', '.join(payload.focus_areas)}")
        prompt = build_prompt(
            "Generate a sprint plan from the following project plan.",
            {
                "Project Plan": json.dumps(self.current_plan.model_dump(by_alias=True), indent=2),
                "Sprint Parameters": "\n".join(parameters),
            },
            SPRINT_FORMAT,
        )
        return await self._ask_json("generateSprintPlan", prompt)

    async def execute(self, input: str) -> RuntimeResult:
        log.info("Executing: %s", truncate(input, 60))
        result = await self.runtime.invoke(input)
        log.success("execute", "Completed")
        return result
