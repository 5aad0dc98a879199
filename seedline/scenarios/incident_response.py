"""
Incident response workflow: Linear -> Slack -> GitHub -> Notion

1. Open a P1 incident issue in Linear
2. Post a Slack alert, then two updates in its thread
3. Open the GitHub issue for the fix
4. Write the Notion postmortem

Team, channel, repository and parent page ids are filled in at run time
from the lister steps by the built-in enrichers.
"""

from seedline.core.types import ScenarioDefinition, StepDefinition

LINEAR_DESCRIPTION = "\n".join(
    [
        "Incident Report",
        "",
        "**Severity:** P1 - Critical",
        "**Impact:** API gateway returning 5xx errors, ~30% of requests failing",
        "**First detected:** Automated alert from monitoring at 14:32 UTC",
        "",
        "## Timeline",
        "- 14:32 - Alert triggered: 5xx rate > 5% threshold",
        "- 14:35 - On-call engineer paged",
        "- 14:40 - Root cause identified: database connection pool exhaustion",
        "",
        "## Action Items",
        "- [ ] Increase connection pool limits",
        "- [ ] Add circuit breaker for DB connections",
        "- [ ] Update monitoring thresholds",
    ]
)

SLACK_ALERT = "\n".join(
    [
        ":rotating_light: *P1 INCIDENT TRIGGERED*",
        "",
        "*Issue:* API Gateway 5xx spike - response times degraded",
        "*Severity:* P1 - Critical",
        "*Linear:* Issue created (see thread for details)",
        "",
        "On-call team has been paged. Please join this thread for updates.",
    ]
)

SLACK_INVESTIGATION = (
    ":mag: *Investigation Update*\n\n"
    "Root cause identified: Database connection pool exhaustion.\n"
    "Current pool size: 20 connections, all saturated.\n"
    "Proposing increase to 50 connections + adding circuit breaker.\n\n"
    "Working on the fix now."
)

SLACK_FIX_DEPLOYED = (
    ":white_check_mark: *Fix Deployed*\n\n"
    "Connection pool increased to 50. Circuit breaker added.\n"
    "5xx rate back to 0%. Monitoring for the next 30 minutes.\n\n"
    "Postmortem to follow."
)

GITHUB_BODY = "\n".join(
    [
        "Incident Fix",
        "",
        "## Context",
        "Related to P1 incident: API Gateway 5xx spike.",
        "Root cause: database connection pool exhaustion under load.",
        "",
        "## Changes",
        "- Increase connection pool from 20 to 50",
        "- Add circuit breaker pattern for DB connections",
        "- Add connection pool metrics to monitoring dashboard",
        "",
        "## Testing",
        "- Load test with 2x normal traffic",
        "- Verify circuit breaker trips at expected threshold",
        "- Monitor for 30 minutes post-deploy",
    ]
)

INCIDENT_RESPONSE = ScenarioDefinition(
    name="incident-response",
    description="Multi-tool incident response workflow: Linear -> Slack -> GitHub -> Notion",
    required_integrations=("linear", "slack", "github", "notion"),
    steps=(
        StepDefinition(
            id="linear_teams",
            integration="linear",
            action_name="list_teams",
            provider_action="LINEAR_GET_ALL_LINEAR_TEAMS",
            resource_type="linear_team",
        ),
        StepDefinition(
            id="linear_issue",
            integration="linear",
            action_name="create_issue",
            provider_action="LINEAR_CREATE_LINEAR_ISSUE",
            payload={
                "title": "P1 Incident: API Gateway 5xx spike - response times degraded",
                "description": LINEAR_DESCRIPTION,
                "priority": 1,
            },
            depends_on=("linear_teams",),
            resource_type="linear_issue",
            resource_id_path="id",
        ),
        StepDefinition(
            id="slack_channels",
            integration="slack",
            action_name="list_channels",
            provider_action="SLACKBOT_LIST_ALL_CHANNELS",
            payload={"limit": 20},
            resource_type="slack_channel",
        ),
        StepDefinition(
            id="slack_alert",
            integration="slack",
            action_name="send_message",
            provider_action="SLACKBOT_SEND_MESSAGE",
            payload={"text": SLACK_ALERT},
            depends_on=("linear_issue", "slack_channels"),
            resource_type="slack_message",
            resource_id_path="ts",
        ),
        StepDefinition(
            id="slack_thread_1",
            integration="slack",
            action_name="reply_thread",
            provider_action="SLACKBOT_SEND_MESSAGE",
            payload={"text": SLACK_INVESTIGATION},
            depends_on=("slack_alert",),
            resource_type="slack_message",
            resource_id_path="ts",
        ),
        StepDefinition(
            id="slack_thread_2",
            integration="slack",
            action_name="reply_thread",
            provider_action="SLACKBOT_SEND_MESSAGE",
            payload={"text": SLACK_FIX_DEPLOYED},
            depends_on=("slack_alert",),
            resource_type="slack_message",
            resource_id_path="ts",
        ),
        StepDefinition(
            id="github_repos",
            integration="github",
            action_name="list_repos",
            provider_action="GITHUB_LIST_REPOSITORIES_FOR_THE_AUTHENTICATED_USER",
            payload={"per_page": 5, "sort": "updated"},
            resource_type="github_repo",
        ),
        StepDefinition(
            id="github_issue",
            integration="github",
            action_name="create_issue",
            provider_action="GITHUB_CREATE_AN_ISSUE",
            payload={
                "title": "fix: increase DB connection pool + add circuit breaker",
                "body": GITHUB_BODY,
                "labels": ["incident", "P1", "infrastructure"],
            },
            depends_on=("github_repos", "slack_thread_2"),
            resource_type="github_issue",
            resource_id_path="number",
        ),
        StepDefinition(
            id="notion_pages",
            integration="notion",
            action_name="list_pages",
            provider_action="NOTION_FETCH_DATA",
            payload={"get_pages": True, "page_size": 5},
            resource_type="notion_page",
        ),
        StepDefinition(
            id="notion_postmortem",
            integration="notion",
            action_name="create_page",
            provider_action="NOTION_CREATE_NOTION_PAGE",
            payload={"title": "Postmortem: API Gateway 5xx Incident"},
            depends_on=("github_issue", "notion_pages"),
            resource_type="notion_page",
            resource_id_path="id",
        ),
    ),
)
