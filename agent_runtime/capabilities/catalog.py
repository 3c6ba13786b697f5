"""Connectors available out of the box. All start disconnected."""

from ..models import AuthType, Capability, CapabilityAction


def _action(action_id: str, name: str, description: str, inputs: dict, outputs: dict) -> CapabilityAction:
    return CapabilityAction(
        id=action_id,
        name=name,
        description=description,
        input_schema={"type": "object", "properties": inputs},
        output_schema={"type": "object", "properties": outputs},
    )


_S = {"type": "string"}
_N = {"type": "number"}
_A = {"type": "array"}


def default_capabilities() -> list[Capability]:
    """Fresh copies of the built-in connector catalog."""
    return [
        Capability(
            id="gmail",
            name="Gmail",
            category="communication",
            auth_type=AuthType.OAUTH2,
            description="Send and receive emails via Gmail",
            actions=[
                _action("gmail-send", "Send Email", "Send an email", {"to": _S, "subject": _S, "body": _S}, {"messageId": _S}),
                _action("gmail-read", "Read Emails", "Read recent emails", {"limit": _N}, {"emails": _A}),
            ],
        ),
        Capability(
            id="google-calendar",
            name="Google Calendar",
            category="scheduling",
            auth_type=AuthType.OAUTH2,
            description="Manage Google Calendar events",
            actions=[
                _action("gcal-create", "Create Event", "Create a calendar event", {"title": _S, "start": _S, "end": _S}, {"eventId": _S}),
                _action("gcal-list", "List Events", "List upcoming events", {"days": _N}, {"events": _A}),
            ],
        ),
        Capability(
            id="google-drive",
            name="Google Drive",
            category="storage",
            auth_type=AuthType.OAUTH2,
            description="Manage files in Google Drive",
            actions=[
                _action("gdrive-upload", "Upload File", "Upload a file", {"name": _S, "content": _S}, {"fileId": _S}),
                _action("gdrive-search", "Search Files", "Search for files", {"query": _S}, {"files": _A}),
            ],
        ),
        Capability(
            id="slack",
            name="Slack",
            category="communication",
            auth_type=AuthType.OAUTH2,
            description="Send messages and manage Slack channels",
            actions=[
                _action("slack-send", "Send Message", "Send a message to a channel", {"channel": _S, "text": _S}, {"ts": _S}),
                _action("slack-list", "List Channels", "List available channels", {}, {"channels": _A}),
            ],
        ),
        Capability(
            id="ms-teams",
            name="Microsoft Teams",
            category="communication",
            auth_type=AuthType.OAUTH2,
            description="Send messages and manage Teams channels",
            actions=[
                _action("teams-send", "Send Message", "Send a message", {"channel": _S, "text": _S}, {"id": _S}),
            ],
        ),
        Capability(
            id="stripe",
            name="Stripe",
            category="finance",
            auth_type=AuthType.API_KEY,
            description="Process payments and manage subscriptions",
            actions=[
                _action("stripe-charge", "Create Charge", "Create a payment charge", {"amount": _N, "currency": _S}, {"chargeId": _S}),
                _action("stripe-customers", "List Customers", "List customers", {"limit": _N}, {"customers": _A}),
            ],
        ),
        Capability(
            id="quickbooks",
            name="QuickBooks",
            category="finance",
            auth_type=AuthType.OAUTH2,
            description="Manage accounting with QuickBooks",
            actions=[
                _action("qb-invoice", "Create Invoice", "Create an invoice", {"customer": _S, "amount": _N}, {"invoiceId": _S}),
            ],
        ),
        Capability(
            id="github",
            name="GitHub",
            category="development",
            auth_type=AuthType.OAUTH2,
            description="Manage repositories and issues on GitHub",
            actions=[
                _action("gh-issue", "Create Issue", "Create a GitHub issue", {"repo": _S, "title": _S, "body": _S}, {"issueNumber": _N}),
                _action("gh-pr", "Create Pull Request", "Create a pull request", {"repo": _S, "title": _S, "head": _S, "base": _S}, {"prNumber": _N}),
            ],
        ),
        Capability(
            id="jira",
            name="Jira",
            category="development",
            auth_type=AuthType.API_KEY,
            description="Manage Jira issues and projects",
            actions=[
                _action("jira-create", "Create Issue", "Create a Jira issue", {"project": _S, "summary": _S, "type": _S}, {"issueKey": _S}),
            ],
        ),
        Capability(
            id="salesforce",
            name="Salesforce",
            category="crm",
            auth_type=AuthType.OAUTH2,
            description="Manage leads and opportunities in Salesforce",
            actions=[
                _action("sf-lead", "Create Lead", "Create a new lead", {"name": _S, "email": _S, "company": _S}, {"leadId": _S}),
                _action("sf-opp", "Create Opportunity", "Create an opportunity", {"name": _S, "amount": _N, "stage": _S}, {"oppId": _S}),
            ],
        ),
    ]
