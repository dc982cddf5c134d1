"""Transforms applied to the node properties generated from the ChatWoot OpenAPI document.

Properties are plain dicts in the host's node-property format. Every
transform mutates the list in place.
"""

from __future__ import annotations

import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

Property = dict[str, Any]

SWITCH_FLOW_URL = "=/api/v1/integrations/n8n/switch_flow"
SWITCH_FLOW_NAME = "Switch Active n8n Flow"
SWITCH_FLOW_ACTION = "Switch active n8n flow"
ASSIGN_CONVERSATION_NAME = "Assign A Conversation"

_SWITCH_FLOW_FIELDS: dict[str, tuple[str, str]] = {
    "conversation_id": (
        "Conversation ID",
        "ChatWoot conversation ID that should switch flows",
    ),
    "flow_id": (
        "Flow ID",
        "Identifier of the target n8n flow",
    ),
    "flow_webhook_url": (
        "Flow Webhook URL",
        "Optional override for the flow webhook endpoint",
    ),
}

_OPTIONAL_NUMBER_SEND = '={{ $value === "" ? undefined : Number($value) }}'


def _dig(data: Any, *keys: str) -> Any:
    """Nested dict lookup; a missing or null level yields None."""
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def _shown_operations(prop: Property) -> list[Any] | None:
    return _dig(prop, "displayOptions", "show", "operation")


def _shown_for(prop: Property, operation_name: str) -> bool:
    operations = _shown_operations(prop)
    return bool(operations) and operation_name in operations


def rename_operation_by_request_url(
    properties: list[Property],
    request_url: str,
    new_name: str,
    new_action: str | None = None,
) -> list[str]:
    """Rename the operation routed to ``request_url`` and repoint references to it.

    Returns the operation names that were replaced.
    """
    previous_names: list[str] = []

    for prop in properties:
        if prop.get("name") != "operation" or not prop.get("options"):
            continue
        option = next(
            (
                item for item in prop["options"]
                if _dig(item, "routing", "request", "url") == request_url
            ),
            None,
        )
        if option is None:
            continue
        current = str(option.get("name") or "")
        if current:
            previous_names.append(current)
        option["name"] = new_name
        option["value"] = new_name
        if new_action:
            option["action"] = new_action

    if not previous_names:
        logger.debug("No operation routed to %s", request_url)
        return previous_names

    for prop in properties:
        operations = _shown_operations(prop)
        if not operations:
            continue
        prop["displayOptions"]["show"]["operation"] = [
            new_name if isinstance(op, str) and op in previous_names else op
            for op in operations
        ]
    return previous_names


def tweak_switch_flow_fields(properties: list[Property], operation_name: str) -> None:
    for prop in properties:
        labels = _SWITCH_FLOW_FIELDS.get(prop.get("name", ""))
        if labels is None or not _shown_for(prop, operation_name):
            continue
        prop["displayName"], prop["description"] = labels


def _make_optional_number(prop: Property | None, description: str) -> None:
    if prop is None:
        return
    display_name = prop.get("displayName")
    if display_name:
        prop["displayName"] = re.sub(r"Id$", "ID", display_name)
    prop["description"] = description
    prop["type"] = "string"
    prop["default"] = ""
    send = _dig(prop, "routing", "send")
    if send:
        send["value"] = _OPTIONAL_NUMBER_SEND


def _find_field(properties: list[Property], name: str, operation_name: str) -> Property | None:
    return next(
        (p for p in properties if p.get("name") == name and _shown_for(p, operation_name)),
        None,
    )


def tweak_assign_conversation(properties: list[Property]) -> None:
    """Make assignee and team optional on the conversation assignment operation."""
    assignee = _find_field(properties, "assignee_id", ASSIGN_CONVERSATION_NAME)
    _make_optional_number(
        assignee,
        "Agent ID to assign the conversation; leave empty to keep the assignment team-based",
    )

    team = _find_field(properties, "team_id", ASSIGN_CONVERSATION_NAME)
    if team is not None:
        send = _dig(team, "routing", "send")
        if send:
            send["type"] = "query"
    _make_optional_number(
        team,
        "Team ID to assign the conversation; leave empty to skip team assignment",
    )


def build_api_node_properties(properties: list[Property]) -> list[Property]:
    """Apply all ChatWoot-specific transforms to generated properties."""
    renamed = rename_operation_by_request_url(
        properties, SWITCH_FLOW_URL, SWITCH_FLOW_NAME, SWITCH_FLOW_ACTION,
    )
    # References were repointed, so fields are shown under the new name
    if renamed:
        tweak_switch_flow_fields(properties, SWITCH_FLOW_NAME)
    tweak_assign_conversation(properties)
    return properties
