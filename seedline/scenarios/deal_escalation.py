"""
Deal escalation workflow: HubSpot -> Slack -> Linear -> Notion
"""

from seedline.core.types import ScenarioDefinition, StepDefinition

SLACK_ALERT = "\n".join(
    [
        ":chart_with_upwards_trend: *Deal Escalation Alert*",
        "",
        "*Deal:* Enterprise Expansion - Acme Corp Q1 Renewal",
        "*Amount:* $120,000",
        "*Contact:* Sarah Chen (VP of Engineering)",
        "*Stage:* Qualified to Buy",
        "",
        "This deal has been flagged for escalation. Customer is evaluating competitor.",
        "Action required: schedule exec-level meeting within 48 hours.",
        "",
        "_HubSpot deal {{hubspot_deal.resource_id}} created. Follow-up task being created in Linear._",
    ]
)

LINEAR_DESCRIPTION = "\n".join(
    [
        "Deal Escalation Follow-up",
        "",
        "## Context",
        "Acme Corp ($120K Q1 renewal) has been escalated.",
        "Customer is evaluating a competitor and needs an exec-level meeting.",
        "",
        "## Action Items",
        "- [ ] Schedule exec meeting within 48 hours",
        "- [ ] Prepare competitive analysis deck",
        "- [ ] Review usage data for renewal pitch",
        "- [ ] Draft custom pricing proposal",
        "",
        "## Cross-references",
        "- HubSpot deal: {{hubspot_deal.resource_id}}",
        "- Slack: #deals channel escalation thread",
    ]
)

DEAL_ESCALATION = ScenarioDefinition(
    name="deal-escalation",
    description="Multi-tool deal escalation workflow: HubSpot -> Slack -> Linear -> Notion",
    required_integrations=("hubspot", "slack", "linear", "notion"),
    steps=(
        StepDefinition(
            id="hubspot_deal",
            integration="hubspot",
            action_name="create_deal",
            provider_action="HUBSPOT_CREATE_DEAL",
            payload={
                "dealname": "Enterprise Expansion - Acme Corp Q1 Renewal",
                "amount": "120000",
            },
            resource_type="hubspot_deal",
            resource_id_path="id",
        ),
        StepDefinition(
            id="hubspot_contact",
            integration="hubspot",
            action_name="create_contact",
            provider_action="HUBSPOT_CREATE_CONTACT",
            payload={
                "email": "seed-sarah.chen@acme-example.com",
                "firstname": "Sarah",
                "lastname": "Chen",
                "company": "Acme Corp",
                "jobtitle": "VP of Engineering",
            },
            resource_type="hubspot_contact",
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
            depends_on=("hubspot_deal", "slack_channels"),
            resource_type="slack_message",
            resource_id_path="ts",
        ),
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
                "title": "Follow-up: Acme Corp deal escalation - exec meeting",
                "description": LINEAR_DESCRIPTION,
                "priority": 2,
            },
            depends_on=("linear_teams", "slack_alert"),
            resource_type="linear_issue",
            resource_id_path="id",
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
            id="notion_summary",
            integration="notion",
            action_name="create_page",
            provider_action="NOTION_CREATE_NOTION_PAGE",
            payload={"title": "Deal Brief: Acme Corp Enterprise Expansion"},
            depends_on=("linear_issue", "notion_pages"),
            resource_type="notion_page",
            resource_id_path="id",
        ),
    ),
)
