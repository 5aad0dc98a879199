"""
Built-in enrichment strategies.

Each strategy fills fields a provider action requires but a scenario author
rarely knows up front (team ids, channel ids, repository coordinates),
reading them from the well-known lister steps of the scenario. A strategy
never overwrites a field that is already set.
"""

from collections.abc import Mapping
from typing import Any

from seedline.core.payload import EnrichmentRegistry, extract_items
from seedline.core.types import StepDefinition, StepResult

default_enrichment_registry = EnrichmentRegistry()
enricher = default_enrichment_registry.enricher

PREFERRED_SLACK_CHANNELS = ("general", "incidents", "deals", "engineering")


def _lister_items(prior: Mapping[str, StepResult], step_id: str, *keys: str) -> list[Any]:
    """Rows returned by a successful lister step, preferring ``keys`` when given."""
    result = prior.get(step_id)
    if result is None or not result.succeeded or not result.data:
        return []
    data = result.data
    if isinstance(data, Mapping):
        for key in keys:
            if isinstance(data.get(key), list):
                return data[key]
    return extract_items(data)


@enricher("LINEAR_CREATE_LINEAR_ISSUE")
def linear_team(payload: dict[str, Any], step: StepDefinition, prior: Mapping[str, StepResult]):
    if payload.get("team_id") or payload.get("teamId"):
        return
    # The teams lister returns {"items": [], "teams": [...]}, so look at teams first
    teams = _lister_items(prior, "linear_teams", "teams")
    if teams and isinstance(teams[0], Mapping) and teams[0].get("id"):
        payload["team_id"] = teams[0]["id"]


@enricher("SLACKBOT_SEND_MESSAGE")
def slack_thread(payload: dict[str, Any], step: StepDefinition, prior: Mapping[str, StepResult]):
    """Thread replies post into the parent alert's channel and thread."""
    if payload.get("channel") or step.action_name != "reply_thread":
        return
    parent = prior.get("slack_alert")
    if parent is None or not parent.succeeded or not isinstance(parent.data, Mapping):
        return
    channel = parent.data.get("channel") or parent.data.get("channel_id")
    if channel:
        payload["channel"] = channel
    thread_ts = parent.external_resource_id or parent.data.get("ts")
    if thread_ts and not payload.get("thread_ts"):
        payload["thread_ts"] = thread_ts


@enricher("SLACKBOT_SEND_MESSAGE")
def slack_channel(payload: dict[str, Any], step: StepDefinition, prior: Mapping[str, StepResult]):
    if payload.get("channel"):
        return
    channels = [c for c in _lister_items(prior, "slack_channels", "channels") if isinstance(c, Mapping)]
    if not channels:
        return
    preferred = next((c for c in channels if c.get("name") in PREFERRED_SLACK_CHANNELS), None)
    channel = preferred or channels[0]
    if channel.get("id"):
        payload["channel"] = channel["id"]


@enricher("GITHUB_CREATE_AN_ISSUE")
def github_repository(
    payload: dict[str, Any], step: StepDefinition, prior: Mapping[str, StepResult]
):
    if payload.get("owner") and payload.get("repo"):
        return
    repos = _lister_items(prior, "github_repos", "repositories")
    if not repos or not isinstance(repos[0], Mapping):
        return
    repo = repos[0]
    owner = (repo.get("owner") or {}).get("login") if isinstance(repo.get("owner"), Mapping) else None
    if not owner and repo.get("full_name"):
        owner = repo["full_name"].split("/")[0]
    if not payload.get("owner") and owner:
        payload["owner"] = owner
    if not payload.get("repo") and repo.get("name"):
        payload["repo"] = repo["name"]


@enricher("NOTION_CREATE_NOTION_PAGE")
def notion_parent(payload: dict[str, Any], step: StepDefinition, prior: Mapping[str, StepResult]):
    if not payload.get("parent_id"):
        pages = _lister_items(prior, "notion_pages", "results")
        if pages and isinstance(pages[0], Mapping) and pages[0].get("id"):
            payload["parent_id"] = pages[0]["id"]
    # The page-create action accepts only title and parent_id
    payload.pop("content", None)
