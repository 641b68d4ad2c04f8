from nodeflow.library.agent import AgentStrategy
from nodeflow.library.external_tool import ExternalToolStrategy
from nodeflow.library.input import InputStrategy
from nodeflow.library.output import OutputStrategy
from nodeflow.library.skill import BuiltinSkill, SkillStrategy

__all__ = [
    "AgentStrategy",
    "BuiltinSkill",
    "ExternalToolStrategy",
    "InputStrategy",
    "OutputStrategy",
    "SkillStrategy",
]
