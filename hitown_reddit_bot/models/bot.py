"""
Pydantic models for the Hi Town bot protocol.

Defines the request and response bodies exchanged with the Hi Town
platform (install, reinstall, message), the bot details document, the
persisted install record, and the health check response.

JSON field names are camelCase as the platform sends them; Python
attributes are snake_case.
"""
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ProtocolModel(BaseModel):
    """Base for protocol models: camelCase aliases, unknown keys ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_json_dict(self) -> dict[str, Any]:
        """Dump using the platform's field names, dropping unset optionals."""
        return self.model_dump(by_alias=True, exclude_none=True)


class BotConfigField(ProtocolModel):
    """A configuration option the group admin can fill in at install time."""

    key: str
    label: str
    placeholder: Optional[str] = None
    type: str = "string"
    required: bool = False


class BotConfigValue(ProtocolModel):
    """One configured ``key``/``value`` pair."""

    key: str
    value: str


class BotDetails(ProtocolModel):
    """
    Bot details as shown in Hi Town.

    ``keywords`` are the message prefixes that cause Hi Town to forward a
    group message to the bot.
    """

    name: str
    description: str
    keywords: list[str] = Field(default_factory=list)
    config: list[BotConfigField] = Field(default_factory=list)


class InstallBotBody(ProtocolModel):
    """Body of ``POST /install``."""

    group_id: str = Field("", alias="groupId")
    group_name: str = Field("", alias="groupName")
    webhook: str = ""
    config: Optional[list[BotConfigValue]] = None
    secret: Optional[str] = None


class InstallBotResponse(ProtocolModel):
    """Answer to ``POST /install``: the token Hi Town uses from now on."""

    token: str


class ReinstallBotBody(ProtocolModel):
    """Body of ``POST /reinstall``."""

    config: Optional[list[BotConfigValue]] = None


class Person(ProtocolModel):
    """Sender of a group message."""

    id: Optional[str] = None
    name: Optional[str] = None


class MessageBotBody(ProtocolModel):
    """Body of ``POST /message``."""

    message: Optional[str] = None
    person: Optional[Person] = None


class BotAction(ProtocolModel):
    """Something the bot does in the group; currently only posting a message."""

    message: Optional[str] = None


class MessageBotResponse(ProtocolModel):
    """
    Answer to ``POST /message``.

    Attributes:
        success: Whether the command was carried out
        note: Explanation shown to the sender when it was not
        actions: Messages to post in the group
    """

    success: bool = True
    note: Optional[str] = None
    actions: Optional[list[BotAction]] = None


class GroupInstall(ProtocolModel):
    """
    One group's installation of the bot, as persisted in the state file.

    ``group_id``, ``group_name`` and ``webhook`` are fixed at install time;
    ``config`` changes on reinstall and ``is_paused`` on pause/resume.
    """

    token: str
    group_id: str = Field(..., alias="groupId")
    group_name: str = Field(..., alias="groupName")
    webhook: str
    config: list[BotConfigValue] = Field(default_factory=list)
    is_paused: bool = Field(False, alias="isPaused")

    def config_value(self, key: str) -> Optional[str]:
        """Return the first configured value for ``key``, or None."""
        for entry in self.config:
            if entry.key == key:
                return entry.value
        return None


class ErrorResponse(ProtocolModel):
    """Error body returned by the HTTP layer."""

    error: Optional[str] = None
    type: Optional[str] = None


class HealthCheckResponse(ProtocolModel):
    """
    Health check response.

    Used to verify the server is running and report component state.
    """

    status: str = Field(
        ...,
        description="Overall health status (healthy, degraded)",
    )
    version: str
    timestamp: int = Field(..., description="Epoch milliseconds")
    components: dict[str, str] = Field(default_factory=dict)
