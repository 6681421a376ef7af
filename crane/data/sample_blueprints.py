"""
Sample blueprints for local development and demos.

Built with the blueprint builder; IDs are fixed so seeding is idempotent.
"""

from typing import Dict

from ..domain.builder import blueprint
from ..domain.models import Blueprint, FormField

DEMO_ORGANIZATION_ID = "org_demo"


def _stored(draft_blueprint: Blueprint, blueprint_id: str) -> Blueprint:
    return draft_blueprint.model_copy(
        update={"id": blueprint_id, "organization_id": DEMO_ORGANIZATION_ID}
    )


# Logs into a benefits portal and submits a beneficiary intake form.
SUBMIT_INTAKE = _stored(
    blueprint("Submit intake form")
    .describe("Log into the benefits portal and submit a beneficiary intake form")
    .tag("intake", "benefits")
    .input("portalUrl", "string", True, "Base URL of the benefits portal")
    .input("firstName", "string", True)
    .input("lastName", "string", True)
    .input("dateOfBirth", "date", True)
    .input("state", "string", False, "Two-letter state code")
    .navigate("{{portalUrl}}/login")
    .auth()
    .wait(2000)
    .click("the New Intake button")
    .form(
        [
            FormField(instruction="the first name field", variable="firstName"),
            FormField(instruction="the last name field", variable="lastName"),
            FormField(instruction="the date of birth field", variable="dateOfBirth"),
        ]
    )
    .select("the state dropdown", "{{state}}")
    .click("the Submit button")
    .screenshot(full_page=True)
    .extract(
        "the confirmation number shown on the page",
        "confirmationNumber",
        schema={"type": "string"},
    )
    .build(),
    "bp_submit_intake",
)

# Looks up a claim and reads back its status.
CHECK_CLAIM_STATUS = _stored(
    blueprint("Check claim status")
    .describe("Look up a claim by number and read its current status")
    .tag("claims")
    .input("portalUrl", "string", True)
    .input("claimNumber", "string", True)
    .navigate("{{portalUrl}}/claims", wait_until="networkidle")
    .type("the username field", credential_field="username")
    .type("the password field", credential_field="password")
    .click("the Sign in button")
    .type("the claim search box", value="{{claimNumber}}")
    .click("the Search button")
    .extract(
        "the status and last update date of the claim",
        "claimStatus",
        schema={
            "type": "object",
            "properties": {"status": {"type": "string"}, "updatedAt": {"type": "string"}},
        },
    )
    .build(),
    "bp_check_claim_status",
)

SAMPLE_BLUEPRINTS: Dict[str, Blueprint] = {
    SUBMIT_INTAKE.id: SUBMIT_INTAKE,
    CHECK_CLAIM_STATUS.id: CHECK_CLAIM_STATUS,
}
