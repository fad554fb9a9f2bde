import pytest

from sosdash.classify import (
    classify, classify_emergency_type, classify_priority, classify_source, classify_status, is_verified,
)
from sosdash.models import EmergencyType, Priority, Source, Status

from conftest import make_record


@pytest.mark.parametrize("raw,expected", [
    ("PENDING", Status.PENDING),
    ("in_progress", Status.IN_PROGRESS),
    ("Completed", Status.COMPLETED),
    (" COMPLETED ", Status.UNRECOGNIZED),
    ("cannot_contact", Status.CANNOT_CONTACT),
    ("CLOSED", Status.UNRECOGNIZED),
    ("", Status.UNRECOGNIZED),
    (None, Status.UNRECOGNIZED),
])
def test_status_is_exact_case_insensitive(raw, expected):
    assert classify_status(raw) is expected


def test_priority_unrecognized_is_explicit():
    assert classify_priority("critical") is Priority.CRITICAL
    assert classify_priority("HIGHLY_CRITICAL") is Priority.UNRECOGNIZED
    assert classify_priority(None) is Priority.UNRECOGNIZED


@pytest.mark.parametrize("raw,expected", [
    ("TRAPPED_UNDER_DEBRIS", EmergencyType.TRAPPED),
    ("food_water_shortage", EmergencyType.FOOD_WATER),
    ("NEED_WATER", EmergencyType.FOOD_WATER),
    ("MEDICAL_EMERGENCY", EmergencyType.MEDICAL),
    ("RESCUE_ASSISTANCE", EmergencyType.RESCUE_ASSISTANCE),
    ("MISSING_PERSON", EmergencyType.MISSING_PERSON),
    ("SHELTER", EmergencyType.OTHER),
    ("", EmergencyType.OTHER),
    (None, EmergencyType.OTHER),
])
def test_emergency_type_substring_rules(raw, expected):
    assert classify_emergency_type(raw) is expected


def test_emergency_type_precedence():
    # MEDICAL is checked before RESCUE, TRAPPED before everything
    assert classify_emergency_type("MEDICAL_RESCUE") is EmergencyType.MEDICAL
    assert classify_emergency_type("RESCUE_MEDICAL") is EmergencyType.MEDICAL
    assert classify_emergency_type("TRAPPED_NO_FOOD") is EmergencyType.TRAPPED
    assert classify_emergency_type("MISSING_WATER_SUPPLY") is EmergencyType.FOOD_WATER


def test_verified_is_complementary():
    assert not is_verified(Status.PENDING)
    assert not is_verified(Status.CANCELLED)
    assert not is_verified(Status.CANNOT_CONTACT)
    for s in (Status.VERIFIED, Status.RESCUED, Status.COMPLETED, Status.IN_PROGRESS, Status.UNRECOGNIZED):
        assert is_verified(s)


def test_completed_counts_as_rescued():
    buckets = classify(make_record(status="COMPLETED")).buckets()
    assert "completed" in buckets
    assert "rescued" in buckets


def test_missing_person_also_counts_missing():
    buckets = classify(make_record(emergencyType="MISSING_PERSON")).buckets()
    assert "missing_person" in buckets
    assert "missing" in buckets


def test_unrecognized_status_and_priority_drop_buckets():
    buckets = classify(make_record(status="WHATEVER", priority="URGENT", emergencyType="X")).buckets()
    assert set(buckets) == {"total", "verified", "other"}


def test_vulnerable_groups_are_independent():
    r = make_record(hasChildren=True, hasElderly=True, hasDisabled=False, hasMedicalEmergency=True)
    buckets = classify(r).buckets()
    assert "has_children" in buckets and "has_elderly" in buckets and "has_medical_emergency" in buckets
    assert "has_disabled" not in buckets


def test_source_defaults_to_other():
    assert classify_source("web") is Source.WEB
    assert classify_source("") is Source.OTHER
    assert classify_source("CALL_CENTER") is Source.OTHER


@pytest.mark.parametrize("raw,expected", [
    (True, True), (1, True), (2, True), (0.5, True), (0, False), (float("nan"), False),
    ("yes", True), ("TRUE", True), ("0", False), (None, False),
])
def test_flags_follow_truthiness(raw, expected):
    assert make_record(hasChildren=raw).has_children is expected
