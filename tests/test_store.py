"""
Tests for the ownership-scoped resource store and field normalization.
"""

import pytest

from ats.errors import DuplicateError, NotFoundError, StorageError, ValidationError
from ats.resources import CertificationStore, EmploymentStore, ProjectStore, SkillStore
from ats.store import Field
from tests.conftest import insert_user


def _count(db, table):
    with db.connection() as conn:
        return conn.fetch_one(f"SELECT COUNT(*) AS n FROM {table}")["n"]


# ===== Field coercion =====


class TestField:
    def test_text_is_trimmed_and_empty_becomes_default(self):
        assert Field("name").coerce("  Python ") == "Python"
        assert Field("name").coerce("   ") is None
        assert Field("status", default="Planned").coerce("") == "Planned"

    def test_text_choices(self):
        field = Field("proficiency", choices=["Beginner", "Expert"])
        assert field.coerce("Expert") == "Expert"
        with pytest.raises(ValidationError, match="proficiency must be one of"):
            field.coerce("Wizard")

    def test_empty_date_becomes_none(self):
        assert Field("date_earned", "date").coerce("") is None
        assert Field("date_earned", "date").coerce(None) is None

    def test_date_accepts_iso_datetimes(self):
        assert Field("d", "date").coerce("2024-03-05T10:00:00Z") == "2024-03-05"

    def test_bad_date_is_validation_error(self):
        with pytest.raises(ValidationError, match="YYYY-MM-DD"):
            Field("start_date", "date").coerce("last spring")

    def test_int_parses_currency_and_truncates(self):
        field = Field("salary_min", "int")
        assert field.coerce("$120,000") == 120000
        assert field.coerce("120000.50") == 120000
        assert field.coerce("$95,000.99") == 95000
        assert field.coerce(95000) == 95000
        assert field.coerce(3.9) == 3
        assert field.coerce("") is None
        assert Field("team_size", "int").coerce("3.5") == 3

    @pytest.mark.parametrize("value", ["-100", -5, "competitive", "1e400"])
    def test_int_rejects_negative_and_garbage(self, value):
        with pytest.raises(ValidationError):
            Field("salary_min", "int").coerce(value)

    def test_bool_parsing(self):
        field = Field("verified", "bool")
        assert field.coerce("true") is True
        assert field.coerce("0") is False
        assert field.coerce(None) is False
        with pytest.raises(ValidationError):
            field.coerce("maybe")

    def test_float(self):
        assert Field("gpa", "float").coerce("3.7") == 3.7
        with pytest.raises(ValidationError, match="gpa must be a number"):
            Field("gpa", "float").coerce("A+")

    def test_csv_list(self):
        field = Field("technologies", "csv_list", default=[])
        assert field.coerce("React, Flask ,, SQL") == ["React", "Flask", "SQL"]
        assert field.coerce(["Go", " Rust "]) == ["Go", "Rust"]
        assert field.coerce(None) == []

    def test_array_must_be_list(self):
        with pytest.raises(ValidationError, match="section_order must be an array"):
            Field("section_order", "array").coerce("summary,skills")

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            Field("x", "blob")


# ===== Store operations =====


@pytest.fixture
def owner(db):
    return insert_user(db)


@pytest.fixture
def stranger(db):
    return insert_user(db)


@pytest.fixture
def certs(db):
    return CertificationStore(db)


def test_create_returns_inserted_record(certs, owner):
    cert = certs.create(owner, {"name": "AWS Certified", "organization": "Amazon"})

    assert cert["id"] > 0
    assert cert["user_id"] == owner
    assert cert["name"] == "AWS Certified"
    assert cert["organization"] == "Amazon"
    assert cert["created_at"]
    assert cert["verified"] is False


def test_create_missing_required_field_persists_nothing(db, certs, owner):
    with pytest.raises(ValidationError, match="name and organization are required"):
        certs.create(owner, {"name": "AWS Certified"})
    with pytest.raises(ValidationError):
        certs.create(owner, {"name": "   ", "organization": "Amazon"})
    assert _count(db, "certifications") == 0


def test_create_rejects_non_object_body(certs, owner):
    with pytest.raises(ValidationError, match="JSON object"):
        certs.create(owner, ["name", "organization"])


def test_list_is_scoped_to_owner(certs, owner, stranger):
    certs.create(owner, {"name": "Mine", "organization": "Org"})
    certs.create(stranger, {"name": "Theirs", "organization": "Org"})

    assert [c["name"] for c in certs.list(owner)] == ["Mine"]
    assert [c["name"] for c in certs.list(stranger)] == ["Theirs"]


def test_list_empty_is_empty_list(certs, owner):
    assert certs.list(owner) == []


def test_get_foreign_row_is_not_found(certs, owner, stranger):
    cert = certs.create(owner, {"name": "Mine", "organization": "Org"})
    with pytest.raises(NotFoundError):
        certs.get(cert["id"], stranger)


def test_update_applies_only_present_fields(certs, owner):
    cert = certs.create(
        owner, {"name": "CKA", "organization": "CNCF", "category": "Cloud", "cert_number": "123"}
    )
    updated = certs.update(cert["id"], owner, {"category": "Kubernetes", "user_id": 999, "id": 5})

    assert updated["id"] == cert["id"]
    assert updated["user_id"] == owner
    assert updated["category"] == "Kubernetes"
    assert updated["cert_number"] == "123"
    assert updated["name"] == "CKA"


def test_update_foreign_row_is_not_found_and_unchanged(certs, owner, stranger):
    cert = certs.create(owner, {"name": "CKA", "organization": "CNCF"})

    with pytest.raises(NotFoundError):
        certs.update(cert["id"], stranger, {"name": "Hijacked"})

    assert certs.get(cert["id"], owner)["name"] == "CKA"


def test_update_without_mutable_fields(certs, owner, stranger):
    cert = certs.create(owner, {"name": "CKA", "organization": "CNCF"})

    with pytest.raises(ValidationError, match="No valid fields"):
        certs.update(cert["id"], owner, {"bogus": 1})
    # Ownership is checked first so foreign ids never leak as validation errors
    with pytest.raises(NotFoundError):
        certs.update(cert["id"], stranger, {})


def test_update_cannot_blank_required_field(certs, owner):
    cert = certs.create(owner, {"name": "CKA", "organization": "CNCF"})
    with pytest.raises(ValidationError, match="name cannot be empty"):
        certs.update(cert["id"], owner, {"name": ""})


def test_delete_twice(db, certs, owner):
    cert = certs.create(owner, {"name": "CKA", "organization": "CNCF"})

    certs.delete(cert["id"], owner)
    with pytest.raises(NotFoundError):
        certs.delete(cert["id"], owner)
    assert _count(db, "certifications") == 0


def test_delete_foreign_row_is_not_found(certs, owner, stranger):
    cert = certs.create(owner, {"name": "CKA", "organization": "CNCF"})
    with pytest.raises(NotFoundError):
        certs.delete(cert["id"], stranger)
    assert certs.get(cert["id"], owner)


def test_certification_does_not_expire_clears_expiration(certs, owner):
    cert = certs.create(
        owner,
        {
            "name": "PMP",
            "organization": "PMI",
            "date_earned": "",
            "expiration_date": "2030-01-01",
            "does_not_expire": True,
        },
    )
    assert cert["date_earned"] is None
    assert cert["expiration_date"] is None
    assert cert["does_not_expire"] is True


# ===== Skills uniqueness =====


def test_duplicate_skill_is_case_insensitive(db, owner):
    skills = SkillStore(db)
    skills.create(owner, {"name": "Python"})

    with pytest.raises(DuplicateError):
        skills.create(owner, {"name": "python"})
    assert _count(db, "skills") == 1


def test_same_skill_for_different_users(db, owner, stranger):
    skills = SkillStore(db)
    skills.create(owner, {"name": "Python"})
    skills.create(stranger, {"name": "Python"})
    assert _count(db, "skills") == 2


def test_renaming_onto_existing_skill_is_duplicate(db, owner):
    skills = SkillStore(db)
    skills.create(owner, {"name": "Python"})
    go = skills.create(owner, {"name": "Go"})

    with pytest.raises(DuplicateError):
        skills.update(go["id"], owner, {"name": "PYTHON"})
    # Changing only the case of its own name is fine
    assert skills.update(go["id"], owner, {"name": "GO"})["name"] == "GO"


def test_skills_ordered_by_category_then_name(db, owner):
    skills = SkillStore(db)
    skills.create(owner, {"name": "SQL", "category": "Technical"})
    skills.create(owner, {"name": "Spanish", "category": "Languages"})
    skills.create(owner, {"name": "Python", "category": "Technical"})

    assert [s["name"] for s in skills.list(owner)] == ["Spanish", "Python", "SQL"]


# ===== Cross-field rules =====


def test_employment_current_role_has_no_end_date(db, owner):
    jobs = EmploymentStore(db)
    entry = jobs.create(
        owner,
        {
            "title": "Engineer",
            "company": "Acme",
            "start_date": "2022-01-15",
            "end_date": "2023-01-01",
            "is_current": True,
        },
    )
    assert entry["end_date"] is None
    assert entry["duration"]


def test_employment_start_after_end_is_rejected(db, owner):
    with pytest.raises(ValidationError, match="Start date must be before end date"):
        EmploymentStore(db).create(
            owner,
            {"title": "Engineer", "company": "Acme", "start_date": "2024-05-01", "end_date": "2023-01-01"},
        )


def test_employment_list_puts_current_roles_first(db, owner):
    store = EmploymentStore(db)
    store.create(owner, {"title": "Old", "company": "A", "start_date": "2015-01-01", "end_date": "2018-01-01"})
    store.create(owner, {"title": "Now", "company": "B", "start_date": "2021-01-01", "is_current": True})
    store.create(owner, {"title": "Mid", "company": "C", "start_date": "2018-02-01", "end_date": "2020-12-31"})

    assert [e["title"] for e in store.list(owner)] == ["Now", "Mid", "Old"]


def test_project_defaults(db, owner):
    project = ProjectStore(db).create(
        owner,
        {
            "name": "Tracker",
            "description": "Job tracker",
            "role": "Lead",
            "start_date": "2024-01-01",
            "technologies": "Flask, React",
        },
    )
    assert project["technologies"] == ["Flask", "React"]
    assert project["status"] == "Planned"


def test_storage_failures_surface_as_storage_error(db, owner):
    class BrokenStore(SkillStore):
        table = "no_such_table"

    with pytest.raises(StorageError):
        BrokenStore(db).list(owner)
