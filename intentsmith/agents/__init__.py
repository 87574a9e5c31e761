"""LLM agents used for parameter inference."""

from .base import Agent, AgentResponse, PromptTemplate, list_models
from .intent_parameters import IntentParameterAgent, IntentParameterInput, IntentParameterOutput

__all__ = [
    "Agent",
    "AgentResponse",
    "PromptTemplate",
    "list_models",
    "IntentParameterAgent",
    "IntentParameterInput",
    "IntentParameterOutput",
]
