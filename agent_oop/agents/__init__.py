"""Ready-made agents built on `BaseAgent`."""

from agent_oop.agents.bash import BashAgent
from agent_oop.agents.directory import DirectoryAgent
from agent_oop.agents.engineer import SeniorEngineerAgent
from agent_oop.agents.file import FileAgent
from agent_oop.agents.library import BookAgent, CypherpunkLibrary, LibrarianAgent, PageAgent
from agent_oop.agents.pm import PMAgent, ProjectPlan

__all__ = [
    "BashAgent",
    "BookAgent",
    "CypherpunkLibrary",
    "DirectoryAgent",
    "FileAgent",
    "LibrarianAgent",
    "PMAgent",
    "PageAgent",
    "ProjectPlan",
    "SeniorEngineerAgent",
]
