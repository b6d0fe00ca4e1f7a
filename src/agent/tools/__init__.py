"""Tools the conversational handlers can offer to the model."""

from src.agent.tools.base import Outcome, Tool, ToolRegistry
from src.agent.tools.lead_tool import CreateLeadArgs, CreateLeadTool

__all__ = ["CreateLeadArgs", "CreateLeadTool", "Outcome", "Tool", "ToolRegistry"]
