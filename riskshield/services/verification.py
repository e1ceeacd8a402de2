"""Certificate of Currency verification against a project's insurance requirements.

Pure functions only: the document service feeds in the extracted certificate
data, the project's requirements and a few project facts, and stores the
returned checks, deficiencies and overall status.

Extracted data shape (as produced by ``services.extraction``)::

    {
      "insured_party_name": str, "insured_party_abn": str,
      "insurer_name": str, "policy_number": str,
      "period_of_insurance_start": "YYYY-MM-DD",
      "period_of_insurance_end": "YYYY-MM-DD",
      "coverages": [{"type", "limit", "limit_type", "excess",
                     "principal_indemnity", "cross_liability", "state"}],
      "broker_name", "broker_email", ...,
      "extraction_confidence": float,
    }
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, Protocol

from riskshield.core.config import settings

APRA_LICENSED_INSURERS: tuple[str, ...] = (
    "QBE Insurance (Australia) Limited",
    "Allianz Australia Insurance Limited",
    "Suncorp Group Limited",
    "CGU Insurance Limited",
    "Zurich Australian Insurance Limited",
    "AIG Australia Limited",
    "Vero Insurance",
    "GIO General Limited",
    "Insurance Australia Limited",
    "AAI Limited",
    "Chubb Insurance Australia Limited",
    "HDI Global Specialty SE - Australia",
    "Liberty Mutual Insurance Company",
    "Tokio Marine & Nichido Fire Insurance Co., Ltd",
    "XL Insurance Company SE",
    "AXA Corporate Solutions Assurance",
    "Swiss Re International SE",
    "Munich Holdings of Australasia Pty Limited",
)
_APRA_LOOKUP = frozenset(name.lower() for name in APRA_LICENSED_INSURERS)

COVERAGE_NAMES = {
    "public_liability": "Public Liability",
    "products_liability": "Products Liability",
    "workers_comp": "Workers' Compensation",
    "professional_indemnity": "Professional Indemnity",
    "motor_vehicle": "Motor Vehicle",
    "contract_works": "Contract Works",
}


class RequirementLike(Protocol):
    coverage_type: str
    minimum_limit: int | None
    maximum_excess: int | None
    principal_indemnity_required: bool
    cross_liability_required: bool


@dataclass
class VerificationResult:
    status: str
    checks: list[dict[str, Any]] = field(default_factory=list)
    deficiencies: list[dict[str, Any]] = field(default_factory=list)
    confidence_score: float | None = None


def format_coverage_type(coverage_type: str) -> str:
    return COVERAGE_NAMES.get(coverage_type) or coverage_type.replace("_", " ").title()


def format_money(amount: int | float | None) -> str:
    return f"${int(amount or 0):,}"


def is_apra_licensed(insurer_name: str | None) -> bool:
    return bool(insurer_name) and insurer_name.strip().lower() in _APRA_LOOKUP


def _parse_date(value: Any) -> date | None:
    if isinstance(value, date):
        return value
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


class _Collector:
    def __init__(self) -> None:
        self.checks: list[dict[str, Any]] = []
        self.deficiencies: list[dict[str, Any]] = []

    def check(self, check_type: str, description: str, status: str, details: str) -> None:
        self.checks.append(
            {"check_type": check_type, "description": description, "status": status, "details": details}
        )

    def deficiency(
        self, kind: str, severity: str, description: str, required: str | None, actual: str | None
    ) -> None:
        self.deficiencies.append(
            {
                "type": kind,
                "severity": severity,
                "description": description,
                "required_value": required,
                "actual_value": actual,
            }
        )


def _check_policy_period(out: _Collector, policy_end: date | None, raw_end: Any, today: date) -> None:
    if policy_end is None:
        out.check("policy_validity", "Policy validity period", "fail", "Policy end date could not be determined")
        out.deficiency(
            "expired_policy", "critical", "Certificate of Currency has no readable expiry date", "Valid policy", "Unknown"
        )
        return

    days_left = (policy_end - today).days
    if policy_end < today:
        out.check("policy_validity", "Policy validity period", "fail", "Policy has expired")
        out.deficiency(
            "expired_policy", "critical", "Certificate of Currency has expired", "Valid policy", f"Expired on {raw_end}"
        )
    elif days_left <= settings.expiry_warning_days:
        out.check("policy_validity", "Policy validity period", "warning", f"Policy expires in {days_left} days")
    else:
        out.check("policy_validity", "Policy validity period", "pass", f"Policy valid until {raw_end}")


def _check_project_period(out: _Collector, policy_end: date | None, raw_end: Any, project_end: date) -> None:
    if policy_end is not None and policy_end < project_end:
        out.check(
            "project_coverage", "Project period coverage", "fail",
            f"Policy expires before project end date ({project_end.isoformat()})",
        )
        out.deficiency(
            "policy_expires_before_project", "critical", "Policy expires before project completion date",
            f"Valid until {project_end.isoformat()}", f"Expires {raw_end}",
        )
    elif policy_end is not None:
        out.check(
            "project_coverage", "Project period coverage", "pass",
            f"Policy covers project period (ends {project_end.isoformat()})",
        )


def _check_abn(out: _Collector, extracted_abn: Any, subcontractor_abn: str | None) -> None:
    found = "".join(str(extracted_abn or "").split())
    if not subcontractor_abn:
        out.check("abn_verification", "ABN verification", "pass", f"ABN {found} verified")
        return
    expected = "".join(subcontractor_abn.split())
    if found != expected:
        out.check(
            "abn_verification", "ABN verification", "fail",
            f"ABN {found} does not match subcontractor ABN {expected}",
        )
        out.deficiency(
            "abn_mismatch", "critical", "Certificate ABN does not match subcontractor ABN", expected, found
        )
    else:
        out.check("abn_verification", "ABN verification", "pass", f"ABN {found} matches subcontractor record")


def _check_insurer(out: _Collector, insurer_name: str | None) -> None:
    if is_apra_licensed(insurer_name):
        out.check(
            "apra_insurer_validation", "APRA insurer validation", "pass", f'Insurer "{insurer_name}" is APRA-licensed'
        )
        return
    out.check(
        "apra_insurer_validation", "APRA insurer validation", "fail",
        f'Insurer "{insurer_name}" is not on the APRA-licensed insurers register',
    )
    out.deficiency(
        "unlicensed_insurer", "critical", "Insurer is not APRA-licensed in Australia",
        "APRA-licensed insurer", insurer_name or "Unknown",
    )


def _check_requirement(
    out: _Collector, requirement: RequirementLike, coverages: list[dict[str, Any]], project_state: str | None
) -> None:
    kind = requirement.coverage_type
    label = format_coverage_type(kind)
    coverage = next((c for c in coverages if c.get("type") == kind), None)

    if coverage is None:
        out.check(f"coverage_{kind}", f"{label} coverage", "fail", "Coverage not found in certificate")
        out.deficiency(
            "missing_coverage", "critical", f"{label} coverage is required but not present",
            format_money(requirement.minimum_limit) if requirement.minimum_limit else "Required", "Not found",
        )
        return

    limit = coverage.get("limit") or 0
    if requirement.minimum_limit and limit < requirement.minimum_limit:
        out.check(
            f"coverage_{kind}", f"{label} limit", "fail",
            f"Limit {format_money(limit)} is below required {format_money(requirement.minimum_limit)}",
        )
        out.deficiency(
            "insufficient_limit", "major", f"{label} limit is below minimum requirement",
            format_money(requirement.minimum_limit), format_money(limit),
        )
    else:
        out.check(f"coverage_{kind}", f"{label} limit", "pass", f"Limit {format_money(limit)} meets minimum requirement")

    excess = coverage.get("excess") or 0
    if requirement.maximum_excess and excess > requirement.maximum_excess:
        out.check(
            f"excess_{kind}", f"{label} excess", "fail",
            f"Excess {format_money(excess)} exceeds maximum {format_money(requirement.maximum_excess)}",
        )
        out.deficiency(
            "excess_too_high", "minor", f"{label} excess exceeds maximum allowed",
            f"Max {format_money(requirement.maximum_excess)}", format_money(excess),
        )

    # Endorsements are only judged when the certificate states them
    if requirement.principal_indemnity_required and coverage.get("principal_indemnity") is False:
        out.check(
            f"principal_indemnity_{kind}", f"{label} principal indemnity", "fail",
            "Principal indemnity extension required but not present",
        )
        out.deficiency(
            "missing_endorsement", "major", f"Principal indemnity extension required for {label}", "Yes", "No"
        )
    if requirement.cross_liability_required and coverage.get("cross_liability") is False:
        out.check(
            f"cross_liability_{kind}", f"{label} cross liability", "fail",
            "Cross liability extension required but not present",
        )
        out.deficiency("missing_endorsement", "major", f"Cross liability extension required for {label}", "Yes", "No")

    wc_state = coverage.get("state")
    if kind == "workers_comp" and project_state and wc_state:
        if wc_state != project_state:
            out.check(
                "workers_comp_state", "Workers' Compensation state coverage", "fail",
                f"WC scheme is for {wc_state} but project is in {project_state}",
            )
            out.deficiency(
                "state_mismatch", "critical", "Workers' Compensation scheme does not cover project state",
                f"{project_state} scheme", f"{wc_state} scheme",
            )
        else:
            out.check(
                "workers_comp_state", "Workers' Compensation state coverage", "pass",
                f"WC scheme ({wc_state}) matches project state",
            )


def overall_status(
    checks: list[dict[str, Any]], deficiencies: list[dict[str, Any]], confidence: float | None = None
) -> str:
    if any(c["status"] == "fail" for c in checks) or any(d["severity"] == "critical" for d in deficiencies):
        return "fail"
    if any(c["status"] == "warning" for c in checks):
        return "review"
    if confidence is not None and confidence < settings.review_confidence_threshold:
        return "review"
    return "pass"


def verify_against_requirements(
    extracted: dict[str, Any],
    requirements: Iterable[RequirementLike],
    *,
    project_end_date: date | None = None,
    project_state: str | None = None,
    subcontractor_abn: str | None = None,
    today: date | None = None,
) -> VerificationResult:
    """Run every check and derive the overall ``pass`` / ``review`` / ``fail`` status."""
    today = today or date.today()
    out = _Collector()

    raw_end = extracted.get("period_of_insurance_end")
    policy_end = _parse_date(raw_end)
    _check_policy_period(out, policy_end, raw_end, today)
    if project_end_date:
        _check_project_period(out, policy_end, raw_end, project_end_date)
    _check_abn(out, extracted.get("insured_party_abn"), subcontractor_abn)
    _check_insurer(out, extracted.get("insurer_name"))

    coverages = [c for c in extracted.get("coverages") or [] if isinstance(c, dict)]
    for requirement in requirements:
        _check_requirement(out, requirement, coverages, project_state)

    confidence = extracted.get("extraction_confidence")
    confidence = float(confidence) if isinstance(confidence, (int, float)) else None
    return VerificationResult(
        status=overall_status(out.checks, out.deficiencies, confidence),
        checks=out.checks,
        deficiencies=out.deficiencies,
        confidence_score=confidence,
    )


def days_until(expiry: date, today: date | None = None) -> int:
    return (expiry - (today or date.today())).days


def expiry_status(days_left: int) -> str:
    if days_left < 0:
        return "expired"
    if days_left <= settings.expiry_warning_days:
        return "expiring_soon"
    return "valid"


def parse_policy_end(extracted: dict[str, Any] | None) -> date | None:
    return _parse_date((extracted or {}).get("period_of_insurance_end"))
