from dataclasses import dataclass
from datetime import date

from riskshield.services.verification import expiry_status, is_apra_licensed, verify_against_requirements

TODAY = date(2026, 3, 1)


@dataclass
class Req:
    coverage_type: str
    minimum_limit: int | None = None
    maximum_excess: int | None = None
    principal_indemnity_required: bool = False
    cross_liability_required: bool = False


def _certificate(**overrides):
    data = {
        "insured_party_name": "Sparky Electrical Pty Ltd",
        "insured_party_abn": "51824753556",
        "insurer_name": "QBE Insurance (Australia) Limited",
        "period_of_insurance_start": "2025-07-01",
        "period_of_insurance_end": "2027-06-30",
        "coverages": [
            {"type": "public_liability", "limit": 20_000_000, "excess": 5_000,
             "principal_indemnity": True, "cross_liability": True},
            {"type": "workers_comp", "limit": 0, "excess": 0, "state": "NSW"},
        ],
        "extraction_confidence": 0.95,
    }
    data.update(overrides)
    return data


def _types(items, key):
    return [i[key] for i in items]


def test_compliant_certificate_passes():
    result = verify_against_requirements(
        _certificate(),
        [Req("public_liability", 20_000_000, 10_000, True, True), Req("workers_comp")],
        project_end_date=date(2027, 1, 31),
        project_state="NSW",
        subcontractor_abn="51 824 753 556",
        today=TODAY,
    )
    assert result.status == "pass"
    assert result.deficiencies == []
    assert all(c["status"] == "pass" for c in result.checks)
    assert result.confidence_score == 0.95


def test_insufficient_limit_is_major_and_fails():
    result = verify_against_requirements(_certificate(), [Req("public_liability", 50_000_000)], today=TODAY)
    assert result.status == "fail"
    deficiency = result.deficiencies[0]
    assert deficiency["type"] == "insufficient_limit"
    assert deficiency["severity"] == "major"
    assert deficiency["required_value"] == "$50,000,000"
    assert deficiency["actual_value"] == "$20,000,000"


def test_missing_coverage_is_critical():
    result = verify_against_requirements(_certificate(), [Req("professional_indemnity", 5_000_000)], today=TODAY)
    assert result.status == "fail"
    assert ("missing_coverage", "critical") in [(d["type"], d["severity"]) for d in result.deficiencies]


def test_expired_policy():
    result = verify_against_requirements(_certificate(period_of_insurance_end="2026-02-01"), [], today=TODAY)
    assert result.status == "fail"
    assert "expired_policy" in _types(result.deficiencies, "type")


def test_policy_expiring_soon_needs_review():
    result = verify_against_requirements(_certificate(period_of_insurance_end="2026-03-20"), [], today=TODAY)
    assert result.status == "review"
    validity = next(c for c in result.checks if c["check_type"] == "policy_validity")
    assert validity["status"] == "warning"
    assert validity["details"] == "Policy expires in 19 days"


def test_policy_ending_before_project():
    result = verify_against_requirements(
        _certificate(), [], project_end_date=date(2028, 1, 1), today=TODAY
    )
    assert "policy_expires_before_project" in _types(result.deficiencies, "type")


def test_abn_mismatch_is_critical():
    result = verify_against_requirements(_certificate(), [], subcontractor_abn="53004085616", today=TODAY)
    assert result.status == "fail"
    mismatch = next(d for d in result.deficiencies if d["type"] == "abn_mismatch")
    assert mismatch["severity"] == "critical"
    assert mismatch["required_value"] == "53004085616"


def test_unlicensed_insurer():
    result = verify_against_requirements(_certificate(insurer_name="Backyard Cover Co"), [], today=TODAY)
    assert "unlicensed_insurer" in _types(result.deficiencies, "type")
    assert is_apra_licensed("  qbe insurance (australia) limited ")
    assert not is_apra_licensed(None)


def test_workers_comp_state_mismatch():
    result = verify_against_requirements(_certificate(), [Req("workers_comp")], project_state="VIC", today=TODAY)
    assert "state_mismatch" in _types(result.deficiencies, "type")


def test_excess_and_endorsements():
    cert = _certificate(
        coverages=[{"type": "public_liability", "limit": 20_000_000, "excess": 50_000,
                    "principal_indemnity": False, "cross_liability": None}]
    )
    result = verify_against_requirements(
        cert, [Req("public_liability", 10_000_000, 10_000, True, True)], today=TODAY
    )
    kinds = _types(result.deficiencies, "type")
    assert "excess_too_high" in kinds
    # Only the explicitly absent endorsement is reported
    assert kinds.count("missing_endorsement") == 1


def test_low_confidence_goes_to_review():
    result = verify_against_requirements(_certificate(extraction_confidence=0.4), [], today=TODAY)
    assert result.status == "review"


def test_expiry_status_boundaries():
    assert expiry_status(-1) == "expired"
    assert expiry_status(0) == "expiring_soon"
    assert expiry_status(30) == "expiring_soon"
    assert expiry_status(31) == "valid"
