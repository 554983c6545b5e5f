from __future__ import annotations

import os
from enum import Enum

from dotenv import load_dotenv
from pydantic import BaseModel, Field


load_dotenv()


class UnparsableConditionPolicy(str, Enum):
    # Reject the template before any session starts.
    REJECT = "reject"
    # Keep the template; the field stays visible and a warning is logged.
    FAIL_OPEN = "fail_open"


class EngineConfig(BaseModel):
    unparsable_condition_policy: UnparsableConditionPolicy = UnparsableConditionPolicy.REJECT
    # Instances created for a repeatable section when a session starts, unless the section overrides it.
    initial_repeatable_instances: int = Field(default=1, ge=0)
    expand_first_section: bool = True


def get_engine_config() -> EngineConfig:
    """
    Load engine configuration from environment variables.

    Reads FORMS_UNPARSABLE_CONDITION_POLICY (reject|fail_open) and
    FORMS_INITIAL_REPEATABLE_INSTANCES; unset variables keep the defaults.
    """
    raw: dict[str, object] = {}
    policy = os.getenv("FORMS_UNPARSABLE_CONDITION_POLICY", "").strip().lower()
    if policy:
        raw["unparsable_condition_policy"] = policy
    instances = os.getenv("FORMS_INITIAL_REPEATABLE_INSTANCES", "").strip()
    if instances:
        raw["initial_repeatable_instances"] = instances
    return EngineConfig.model_validate(raw)
