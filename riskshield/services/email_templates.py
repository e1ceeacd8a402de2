"""Built-in email templates and ``{{variable}}`` rendering."""

import re
from typing import Mapping

_VARIABLE = re.compile(r"\{\{\s*(\w+)\s*\}\}")

_SIGN_OFF = "Best regards,\nRiskShield AI Compliance Team"

DEFAULT_EMAIL_TEMPLATES: dict[str, dict[str, str]] = {
    "deficiency": {
        "name": "Deficiency Notice",
        "subject": "Certificate of Currency Deficiency Notice - {{subcontractor_name}} / {{project_name}}",
        "body": (
            "Dear {{recipient_name}},\n\n"
            "We have reviewed the Certificate of Currency submitted for {{subcontractor_name}} "
            "(ABN: {{subcontractor_abn}}) and found the following compliance issues for the "
            "{{project_name}} project:\n\n"
            "DEFICIENCIES FOUND:\n{{deficiency_list}}\n\n"
            "ACTION REQUIRED:\n"
            "Please provide an updated Certificate of Currency that addresses the above deficiencies "
            "by {{due_date}}.\n\n"
            "You can upload the updated certificate here: {{upload_link}}\n\n"
            "If you have any questions or need clarification on the requirements, please don't "
            "hesitate to contact us.\n\n" + _SIGN_OFF
        ),
    },
    "confirmation": {
        "name": "Compliance Confirmed",
        "subject": "Insurance Compliance Confirmed - {{subcontractor_name}} / {{project_name}}",
        "body": (
            "Dear {{recipient_name}},\n\n"
            "Great news! The Certificate of Currency submitted for {{subcontractor_name}} "
            "(ABN: {{subcontractor_abn}}) has been verified and meets all requirements for the "
            "{{project_name}} project.\n\n"
            "VERIFICATION RESULT: APPROVED\n\n"
            "{{subcontractor_name}} is now approved to work on the {{project_name}} project.\n\n" + _SIGN_OFF
        ),
    },
    "expiration_reminder": {
        "name": "Expiration Reminder",
        "subject": "Certificate Expiring Soon - {{subcontractor_name}} / {{project_name}}",
        "body": (
            "Dear {{recipient_name}},\n\n"
            "This is a reminder that the Certificate of Currency for {{subcontractor_name}} "
            "(ABN: {{subcontractor_abn}}) will expire on {{expiry_date}}.\n\n"
            "PROJECT: {{project_name}}\n"
            "DAYS UNTIL EXPIRY: {{days_until_expiry}}\n\n"
            "ACTION REQUIRED:\n"
            "Please provide an updated Certificate of Currency before the expiration date to "
            "maintain compliance.\n\n"
            "You can upload the updated certificate here: {{upload_link}}\n\n" + _SIGN_OFF
        ),
    },
    "follow_up": {
        "name": "Follow-up",
        "subject": "REMINDER: Certificate of Currency Required - {{subcontractor_name}} / {{project_name}}",
        "body": (
            "Dear {{recipient_name}},\n\n"
            "This is a reminder regarding the outstanding Certificate of Currency for "
            "{{subcontractor_name}} (ABN: {{subcontractor_abn}}) for the {{project_name}} project.\n\n"
            "OUTSTANDING ISSUES:\n{{deficiency_list}}\n\n"
            "Please provide the required documentation as soon as possible to maintain compliance.\n\n"
            "Upload link: {{upload_link}}\n\n" + _SIGN_OFF
        ),
    },
    "critical_alert": {
        "name": "Critical Alert",
        "subject": "URGENT: Insurance Non-Compliance - {{subcontractor_name}} / {{project_name}}",
        "body": (
            "Dear {{recipient_name}},\n\n"
            "{{subcontractor_name}} (ABN: {{subcontractor_abn}}) is on site for the {{project_name}} "
            "project without a compliant Certificate of Currency.\n\n"
            "OUTSTANDING ISSUES:\n{{deficiency_list}}\n\n"
            "Site access may be restricted until compliant documentation is provided.\n\n"
            "Upload link: {{upload_link}}\n\n" + _SIGN_OFF
        ),
    },
}


def render(text: str | None, variables: Mapping[str, object]) -> str:
    """Substitute ``{{name}}`` placeholders; unknown placeholders are left as written."""

    def _sub(match: re.Match) -> str:
        key = match.group(1)
        return str(variables[key]) if key in variables and variables[key] is not None else match.group(0)

    return _VARIABLE.sub(_sub, text or "")


def format_deficiency_list(deficiencies: list[dict]) -> str:
    lines = []
    for d in deficiencies:
        lines.append(
            f"- {d.get('description')}\n"
            f"  Severity: {str(d.get('severity', '')).upper()}\n"
            f"  Required: {d.get('required_value') or 'N/A'}\n"
            f"  Actual: {d.get('actual_value') or 'N/A'}"
        )
    return "\n\n".join(lines)
