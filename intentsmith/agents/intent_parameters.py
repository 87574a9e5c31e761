"""
Intent Parameter Agent.

Reads a component's declaration and the Intent-handling part of its source
and proposes the extras (key, type, example value) the component expects.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

from ..models.command import ExtraParameter, ExtraSource, ExtraType
from ..models.manifest import ComponentRecord, IntentFilter
from .base import Agent, PromptTemplate


class IntentParameterInput(BaseModel):
    """Everything the model sees about one component."""

    component: ComponentRecord
    intent_filter: IntentFilter | None = Field(default=None)
    source_text: str | None = Field(default=None, description="Intent-context excerpt")
    hints: list[str] = Field(default_factory=list, description="Extra keys found by static scan")


class ProposedExtra(BaseModel):
    """One extra as returned by the model."""

    model_config = {"strict": True, "extra": "ignore"}

    key: str = Field(min_length=1)
    type: str = Field(default="string")
    example: str | int | float | bool = Field(default="")

    @field_validator("key", mode="before")
    @classmethod
    def _strip_key(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    def to_parameter(self) -> ExtraParameter:
        if isinstance(self.example, bool):
            example = "true" if self.example else "false"
        else:
            example = str(self.example)
        return ExtraParameter(
            key=self.key,
            type=ExtraType.from_label(self.type),
            example=example,
            source=ExtraSource.LLM_INFERRED,
        )


class IntentParameterOutput(BaseModel):
    """Reply schema: ``{"extras": [{"key", "type", "example"}]}``."""

    model_config = {"strict": True, "extra": "ignore"}

    extras: list[ProposedExtra]

    def to_parameters(self) -> list[ExtraParameter]:
        """Convert to ExtraParameters, keeping the first occurrence of each key."""
        seen: set[str] = set()
        parameters = []
        for proposed in self.extras:
            parameter = proposed.to_parameter()
            if parameter.key in seen:
                continue
            seen.add(parameter.key)
            parameters.append(parameter)
        return parameters


SYSTEM_PROMPT = """You are an expert Android security engineer. You read the manifest declaration \
and Java/Kotlin source of an exported Android component and determine which Intent extras it \
reads, so that the component can be exercised with `adb shell am`.

Rules:
- Report only extras the code actually reads (getStringExtra, getIntExtra, getExtras().getString, \
intent.extras?.get..., Bundle accessors and similar). Do not invent keys.
- Use the literal key string from the code. If a key is a constant, resolve it when its value is \
visible in the source; otherwise skip it.
- type is one of: string, int, long, float, double, bool, uri, component, string[], int[], long[], float[].
- example is a short, plausible value of that type, written as a string.
- If no extras are read, return an empty list.

Respond with a single JSON object and nothing else:
{"extras": [{"key": "<key>", "type": "<type>", "example": "<value>"}]}"""

USER_PROMPT = """## Component
kind: {kind}
class: {name}
package: {package}
exported: {exported}
permission: {permission}

## Declaration
{declaration}

## Matched intent filter
{intent_filter}

## Keys seen by static scan
{hints}

## Source excerpt
```
{source}
```"""


class IntentParameterAgent(Agent[IntentParameterInput, IntentParameterOutput]):
    """Proposes intent extras for one component."""

    @property
    def name(self) -> str:
        return "intent_parameters"

    @property
    def output_type(self) -> type[IntentParameterOutput]:
        return IntentParameterOutput

    def get_prompt_template(self) -> PromptTemplate:
        return PromptTemplate(
            template_id="intent_parameters",
            version="1.2",
            system_prompt=SYSTEM_PROMPT,
            user_prompt_template=USER_PROMPT,
            examples=[
                {
                    "input": 'String user = getIntent().getStringExtra("user_id");\n'
                             'boolean debug = getIntent().getBooleanExtra("debug", false);',
                    "output": '{"extras": [{"key": "user_id", "type": "string", "example": "1001"}, '
                              '{"key": "debug", "type": "bool", "example": "true"}]}',
                },
            ],
        )

    def subject(self, input_data: IntentParameterInput) -> str:
        return input_data.component.name

    def prepare_input(self, input_data: IntentParameterInput) -> dict[str, Any]:
        component = input_data.component
        intent_filter = input_data.intent_filter
        if intent_filter is None:
            filter_text = "(none)"
        else:
            filter_text = "\n".join([
                f"actions: {', '.join(intent_filter.actions) or '-'}",
                f"categories: {', '.join(intent_filter.categories) or '-'}",
                f"data: {', '.join(d.to_uri() or d.mime_type or '?' for d in intent_filter.data) or '-'}",
            ])

        return {
            "kind": component.kind.value,
            "name": component.name,
            "package": component.package,
            "exported": component.is_exported,
            "permission": component.guarding_permission or "(none)",
            "declaration": component.declaration or "(unavailable)",
            "intent_filter": filter_text,
            "hints": ", ".join(input_data.hints) or "(none)",
            "source": input_data.source_text or "(no source available)",
        }
