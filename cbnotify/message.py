"""Discord message models and the build status to message mapping."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, Field

from cbnotify.build import (
    FAILED_STATUSES,
    PROJECT_ID_KEY,
    TRIGGER_NAME_KEY,
    Build,
    BuildStatus,
)
from cbnotify.utils.logging import get_logger

log = get_logger(__name__)

USERNAME = "Cloud Build Notifier"

COLOR_WORKING = 1027128
COLOR_SUCCESS = 1127128
COLOR_ERROR = 14177041


class Embed(BaseModel):
    title: str
    color: int = 0
    description: str | None = None


class DiscordMessage(BaseModel):
    username: str = USERNAME
    content: str | None = None
    embeds: list[Embed] = Field(default_factory=list)

    def to_json(self) -> str:
        """Serialize for the webhook, omitting absent content and descriptions."""
        return self.model_dump_json(exclude_none=True)


@dataclass(frozen=True)
class MentionRule:
    """Mention ``user_id`` when a build of ``project_id`` fails."""

    project_id: str
    user_id: str

    def matches(self, project_id: str) -> bool:
        return bool(self.project_id) and bool(self.user_id) and project_id == self.project_id


def _title(prefix: str, service: str) -> str:
    return f"{prefix} {service}" if service else prefix


def build_message(build: Build, mention: MentionRule | None = None) -> DiscordMessage | None:
    """Map a build to a Discord message.

    Returns None for statuses that are not announced (queued, cancelled,
    unknown, ...). The caller treats that as a silent no-op.
    """
    embeds: list[Embed] = []
    content: str | None = None

    repo_name = build.repo_name
    trigger_name = build.substitution(TRIGGER_NAME_KEY)
    project_id = build.substitution(PROJECT_ID_KEY)
    service = build.service_name
    log.debug("build_message", build_id=build.id, repo=repo_name, service=service)

    if build.status is BuildStatus.WORKING:
        embeds.append(Embed(title=_title("🔨 BUILDING", service), color=COLOR_WORKING))
    elif build.status is BuildStatus.SUCCESS:
        embeds.append(Embed(title=_title("✅ SUCCESS", service), color=COLOR_SUCCESS))
    elif build.status in FAILED_STATUSES:
        embeds.append(
            Embed(
                title=f"❌ ERROR on {service} - {build.status.value}",
                color=COLOR_ERROR,
            )
        )
        embeds.append(Embed(title="Log", description=build.log_url))

        if mention is not None and mention.matches(project_id):
            content = f"<@{mention.user_id}> Build failed for {service} in {project_id}"
    else:
        log.info("unhandled_status", build_id=build.id, status=build.status.value)
        return None

    if repo_name:
        embeds[0].description = f"Source repo: {repo_name}\nTrigger: {project_id}/{trigger_name}"

    return DiscordMessage(content=content, embeds=embeds)
