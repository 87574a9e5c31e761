"""
Command Synthesis Service.

Turns a component and its extras into exactly one device invocation. The
structure (verb, target, filter-derived fields, extras) is built first; the
argv and the shell-escaped command line are pure functions of it, so equal
inputs always yield byte-identical commands.
"""

from __future__ import annotations

import shlex
from collections.abc import Iterable, Sequence
from typing import Any

from ...models.command import ExtraParameter, ExtraType, InvocationVerb, SynthesizedCommand
from ...models.manifest import ComponentKind, ComponentRecord

_AM_SUBCOMMANDS = {
    InvocationVerb.START_ACTIVITY: "start",
    InvocationVerb.START_SERVICE: "startservice",
    InvocationVerb.SEND_BROADCAST: "broadcast",
}

_TRUE_VALUES = frozenset({"true", "1", "yes", "y", "on"})


def normalise_example(extra: ExtraParameter) -> str:
    """Value rendered for an extra; booleans become ``true``/``false``."""
    if extra.type is ExtraType.BOOL:
        return "true" if extra.example.strip().lower() in _TRUE_VALUES else "false"
    return extra.example


def extras_argv(extras: Iterable[ExtraParameter]) -> list[str]:
    """Typed ``am`` flag triples, in the given order."""
    argv: list[str] = []
    for extra in extras:
        argv += [extra.type.flag, extra.key, normalise_example(extra)]
    return argv


def build_argv(command: SynthesizedCommand) -> tuple[str, ...]:
    """Device-side argv for a synthesized command."""
    if command.verb is InvocationVerb.QUERY_PROVIDER:
        return ("content", "query", "--uri", command.provider_uri or "")

    argv = ["am", _AM_SUBCOMMANDS[command.verb], "-n", command.target]
    if command.action:
        argv += ["-a", command.action]
    for category in command.categories:
        argv += ["-c", category]
    if command.data_uri:
        argv += ["-d", command.data_uri]
    elif command.mime_type:
        argv += ["-t", command.mime_type]
    argv += extras_argv(command.extras)
    return tuple(argv)


def render_command(argv: Sequence[str], adb_prefix: Sequence[str] = ("adb",)) -> str:
    """Shell-escaped ``adb [-s serial] shell <argv>`` line."""
    return " ".join(shlex.quote(token) for token in [*adb_prefix, "shell", *argv])


class CommandSynthesizer:
    """Builds SynthesizedCommands for components."""

    def __init__(self, adb_path: str = "adb", serial: str | None = None) -> None:
        self.adb_path = adb_path
        self.serial = serial

    @property
    def adb_prefix(self) -> tuple[str, ...]:
        if self.serial:
            return (self.adb_path, "-s", self.serial)
        return (self.adb_path,)

    def synthesize(self, component: ComponentRecord, extras: Sequence[ExtraParameter] = ()) -> SynthesizedCommand:
        """Produce the invocation for one component.

        Activities, services and receivers are addressed explicitly by
        component name; the first filter that declares an action supplies the
        action, its categories, and a data URI (or, lacking one, a MIME type).
        When no filter declares an action the invocation is bare: only the
        explicit component target (and extras) are rendered.
        Providers are queried through their first authority, falling back to
        the package name; their extras are kept but not rendered.

        Args:
            component: The component to invoke.
            extras: Extras in the order they should appear.

        Returns:
            SynthesizedCommand: The command with argv and command line set.
        """
        verb = InvocationVerb.for_kind(component.kind)
        fields: dict[str, Any] = {
            "component": component.name,
            "package": component.package,
            "verb": verb,
            "target": f"{component.package}/{component.name}",
            "extras": tuple(extras),
        }

        if component.kind is ComponentKind.PROVIDER:
            authority = component.authorities[0] if component.authorities else component.package
            fields["provider_uri"] = f"content://{authority}"
        else:
            intent_filter = component.primary_filter
            if intent_filter is not None and intent_filter.has_action:
                data_uri = intent_filter.first_uri
                fields.update(
                    action=intent_filter.actions[0],
                    categories=intent_filter.categories,
                    data_uri=data_uri,
                    mime_type=None if data_uri else intent_filter.first_mime_type,
                )

        draft = SynthesizedCommand(**fields)
        argv = build_argv(draft)
        return draft.model_copy(update={"argv": argv, "command": render_command(argv, self.adb_prefix)})
