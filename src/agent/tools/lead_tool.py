"""``create_lead`` tool: registers an interested visitor as a CRM lead.

Idempotent per email address.  The provider is asked for an existing lead
first, and a second registration for the same address yields
:class:`ToolDuplicate` carrying the original lead id instead of a new record.
"""

from __future__ import annotations

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.agent.tools.base import Outcome, Tool
from src.interfaces.lead_provider import ILeadProvider
from src.models.ticketing import is_valid_email
from src.models.tools import ToolDuplicate, ToolFailure, ToolSuccess
from src.utils.errors import CRMError

logger = structlog.get_logger(logger_name=__name__)


class CreateLeadArgs(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    first_name: str = Field(min_length=1, description="The user's first name.")
    last_name: str = Field(default="", description="The user's last name, if given.")
    email: str = Field(description="The user's email address.")

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        if not is_valid_email(value):
            raise ValueError("a valid email address is required")
        return value.lower()


class CreateLeadTool(Tool[CreateLeadArgs]):
    name = "create_lead"
    description = (
        "Register the user as a lead so the sales team can follow up. "
        "Only call this once the user has given their first name and email address "
        "and has asked to be contacted, to sign up, or to receive more information."
    )
    args_schema = CreateLeadArgs

    def __init__(self, lead_provider: ILeadProvider) -> None:
        self._lead_provider = lead_provider

    async def execute(self, args: CreateLeadArgs) -> Outcome:
        existing = await self._lead_provider.find_lead_by_email(args.email)
        if existing is not None:
            logger.info("lead_already_exists", lead_id=existing)
            return ToolDuplicate(existing_id=existing)

        try:
            lead_id = await self._lead_provider.create_lead(args.first_name, args.last_name, args.email)
        except CRMError as exc:
            # A concurrent registration may have won the race.
            existing = await self._lead_provider.find_lead_by_email(args.email)
            if existing is not None:
                return ToolDuplicate(existing_id=existing)
            return ToolFailure(reason=exc.message)

        return ToolSuccess(id=lead_id)
