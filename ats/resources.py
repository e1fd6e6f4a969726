"""
Resource definitions.

One ``ResourceStore`` subclass per owned table, plus the upsert-style
accessors for profiles and skill progress. ``build_stores`` wires them all to
a single ``Database``.
"""

import logging
from collections import Counter
from typing import Any, Dict, List, Optional, Tuple

from ats.dates import (
    days_since,
    days_until,
    deadline_urgency,
    employment_duration,
    parse_date,
    parse_timestamp,
    shift_date,
    today,
    utcnow_iso,
)
from ats.errors import DuplicateError, ValidationError
from ats.store import Field, ResourceStore

logger = logging.getLogger(__name__)

PROFICIENCY_LEVELS = ["Beginner", "Intermediate", "Advanced", "Expert"]
COVER_LETTER_FORMATS = ["pdf", "docx", "txt"]

# Job pipeline, in order
STAGES = ["Interested", "Applied", "Phone Screen", "Interview", "Offer", "Rejected"]
RESPONSE_STAGES = {"Phone Screen", "Interview", "Offer", "Rejected"}

JOB_SORT_COLUMNS = {
    "date_added": "created_at",
    "deadline": "deadline",
    "salary": "salary_max",
    "company": "company",
}

SKILL_PROGRESS_STATUSES = ["not started", "in progress", "completed"]


# ===== Profile sections =====


class EducationStore(ResourceStore):
    table = "education"
    singular = "education"
    plural = "education"
    label = "Education"
    order_by = "graduation_date IS NULL, graduation_date DESC, id DESC"
    required_message = "Missing required fields"
    fields = [
        Field("institution", required=True),
        Field("degree_type", required=True),
        Field("field_of_study", required=True),
        Field("graduation_date", "date"),
        Field("currently_enrolled", "bool"),
        Field("education_level"),
        Field("gpa", "float"),
        Field("gpa_private", "bool"),
        Field("honors"),
    ]

    def clean(self, values, existing=None):
        gpa = values.get("gpa")
        if gpa is not None and not 0 <= gpa <= 5:
            raise ValidationError("gpa must be between 0 and 5")
        return values


class EmploymentStore(ResourceStore):
    table = "employment"
    singular = "employment"
    plural = "employment"
    label = "Employment entry"
    # Current roles (no end date) first
    order_by = "end_date IS NOT NULL, end_date DESC, start_date DESC, id DESC"
    required_message = "Title, company, and start date are required."
    fields = [
        Field("title", required=True),
        Field("company", required=True),
        Field("location"),
        Field("start_date", "date", required=True),
        Field("end_date", "date"),
        Field("is_current", "bool"),
        Field("description"),
    ]

    def clean(self, values, existing=None):
        if values.get("is_current"):
            values["end_date"] = None
        start, end = parse_date(values.get("start_date")), parse_date(values.get("end_date"))
        if start and end and start > end:
            raise ValidationError("Start date must be before end date.")
        return values

    def decorate(self, record):
        record["duration"] = employment_duration(record.get("start_date"), record.get("end_date"))
        return record


class SkillStore(ResourceStore):
    table = "skills"
    singular = "skill"
    plural = "skills"
    label = "Skill"
    order_by = "category, name"
    unique_field = "name"
    required_message = "Skill name required"
    duplicate_message = "Duplicate skill"
    fields = [
        Field("name", required=True),
        Field("category"),
        Field("proficiency", choices=PROFICIENCY_LEVELS),
    ]


class CertificationStore(ResourceStore):
    table = "certifications"
    singular = "certification"
    plural = "certifications"
    label = "Certification"
    order_by = "date_earned IS NULL, date_earned DESC, id DESC"
    required_message = "Certification name and organization are required"
    fields = [
        Field("name", required=True),
        Field("organization", required=True),
        Field("category"),
        Field("cert_number"),
        Field("date_earned", "date"),
        Field("expiration_date", "date"),
        Field("does_not_expire", "bool"),
        Field("document_url"),
        Field("renewal_reminder"),
        Field("verified", "bool"),
    ]

    def clean(self, values, existing=None):
        if values.get("does_not_expire"):
            values["expiration_date"] = None
        return values


class ProjectStore(ResourceStore):
    table = "projects"
    singular = "project"
    plural = "projects"
    label = "Project"
    order_by = "start_date DESC, id DESC"
    required_message = "Project name, description, role, and start date are required."
    fields = [
        Field("name", required=True),
        Field("description", required=True),
        Field("role", required=True),
        Field("start_date", "date", required=True),
        Field("end_date", "date"),
        Field("technologies", "csv_list", default=[]),
        Field("repository_link"),
        Field("team_size", "int"),
        Field("collaboration_details"),
        Field("outcomes"),
        Field("industry"),
        Field("project_type"),
        Field("media_url"),
        Field("status", default="Planned"),
    ]

    def clean(self, values, existing=None):
        start, end = parse_date(values.get("start_date")), parse_date(values.get("end_date"))
        if start and end and start > end:
            raise ValidationError("Start date must be before end date.")
        return values


# ===== Presets and documents =====


class SectionPresetStore(ResourceStore):
    table = "section_presets"
    singular = "preset"
    plural = "presets"
    label = "Preset"
    required_message = "Missing required fields"
    fields = [
        Field("section_name", required=True),
        Field("preset_name", required=True),
        Field("section_data", "json", required=True),
    ]


class ResumePresetStore(ResourceStore):
    table = "resume_presets"
    singular = "preset"
    plural = "presets"
    label = "Preset"
    fields = [
        Field("name", required=True),
        Field("section_order", "array", required=True),
        Field("visible_sections", "json"),
    ]


class CoverLetterStore(ResourceStore):
    table = "cover_letters"
    singular = "cover_letter"
    plural = "cover_letters"
    label = "Cover letter"
    required_message = "Title is required"
    fields = [
        Field("title", required=True),
        Field("format", default="pdf", choices=COVER_LETTER_FORMATS),
        Field("content"),
        Field("file_url"),
    ]


class CoverLetterTemplateStore(ResourceStore):
    """
    Cover letter template library.

    Shared templates have no owner (``user_id`` NULL) and are visible to
    everyone; templates a user creates are visible only to them. Views and
    uses are counted per template.
    """

    table = "cover_letter_templates"
    singular = "template"
    plural = "templates"
    label = "Template"
    order_by = "updated_at DESC, id DESC"
    required_message = "Name, industry, and content are required."
    fields = [
        Field("name", required=True),
        Field("industry", required=True),
        Field("category", default="Formal"),
        Field("content", required=True),
    ]

    COUNTERS = ("view_count", "use_count")
    VISIBLE = "(user_id = ? OR user_id IS NULL)"

    def after_create(self, conn, record):
        conn.execute(
            f"UPDATE {self.table} SET updated_at = created_at WHERE id = ?", (record["id"],)
        )

    def decorate(self, record):
        record["is_custom"] = record.get("user_id") is not None
        for counter in self.COUNTERS:
            record[counter] = int(record.get(counter) or 0)
        return record

    def list(self, user_id: int, **filters) -> List[Dict[str, Any]]:
        with self.db.connection() as conn:
            rows = conn.fetch_all(
                f"SELECT * FROM {self.table} WHERE {self.VISIBLE} ORDER BY {self.order_by}",
                (user_id,),
            )
        return [self._decode(row) for row in rows]

    def get(self, record_id: int, user_id: int) -> Dict[str, Any]:
        with self.db.connection() as conn:
            row = conn.fetch_one(
                f"SELECT * FROM {self.table} WHERE id = ? AND {self.VISIBLE}", (record_id, user_id)
            )
        if row is None:
            raise self._not_found()
        return self._decode(row)

    def track(self, template_id: int, user_id: int, counter: str) -> Dict[str, Any]:
        """Bump ``view_count`` or ``use_count`` on a template the user can see."""
        if counter not in self.COUNTERS:
            raise ValueError(f"Unknown template counter: {counter}")
        with self.db.connection() as conn:
            updated = conn.execute(
                f"UPDATE {self.table} SET {counter} = {counter} + 1, updated_at = ? "
                f"WHERE id = ? AND {self.VISIBLE}",
                (utcnow_iso(), template_id, user_id),
            )
            if updated == 0:
                raise self._not_found()
            row = conn.fetch_one(f"SELECT * FROM {self.table} WHERE id = ?", (template_id,))
        return self._decode(row)


class ResumeStore(ResourceStore):
    table = "resumes"
    singular = "resume"
    plural = "resumes"
    label = "Resume"
    required_message = "Title is required"
    fields = [
        Field("title", required=True),
        Field("template_id", "int"),
        Field("sections", "json", default={}),
    ]

    def draft_from_profile(self, user_id: int) -> Dict[str, Any]:
        """
        Assemble resume sections from everything the user has entered.

        Nothing is written.
        """
        with self.db.connection() as conn:
            profile = conn.fetch_one("SELECT * FROM profiles WHERE user_id = ?", (user_id,)) or {}

        employment = EmploymentStore(self.db).list(user_id)
        education = EducationStore(self.db).list(user_id)
        skills = SkillStore(self.db).list(user_id)
        projects = ProjectStore(self.db).list(user_id)
        certifications = CertificationStore(self.db).list(user_id)

        return {
            "summary": {
                "full_name": profile.get("full_name") or "",
                "title": profile.get("title") or "",
                "contact": {
                    "email": profile.get("email") or "",
                    "phone": profile.get("phone") or "",
                    "location": profile.get("location") or "",
                },
                "bio": profile.get("bio") or "",
            },
            "experience": [
                {
                    "title": e["title"],
                    "company": e["company"],
                    "location": e["location"],
                    "start_date": e["start_date"],
                    "end_date": e["end_date"],
                    "current": e["is_current"],
                    "description": e["description"],
                }
                for e in employment
            ],
            "education": [
                {
                    "institution": ed["institution"],
                    "degree": ed["degree_type"],
                    "field": ed["field_of_study"],
                    "graduation_date": ed["graduation_date"],
                    "honors": ed["honors"],
                    # Private GPAs stay off generated resumes
                    "gpa": None if ed["gpa_private"] else ed["gpa"],
                }
                for ed in education
            ],
            "skills": [
                {"name": s["name"], "category": s["category"], "proficiency": s["proficiency"]}
                for s in skills
            ],
            "projects": [
                {
                    "name": p["name"],
                    "description": p["description"],
                    "role": p["role"],
                    "technologies": p["technologies"],
                    "start_date": p["start_date"],
                    "end_date": p["end_date"],
                }
                for p in projects
            ],
            "certifications": [
                {
                    "name": c["name"],
                    "organization": c["organization"],
                    "date_earned": c["date_earned"],
                    "expiration_date": c["expiration_date"],
                }
                for c in certifications
            ],
        }


class ResumeTemplateStore(ResourceStore):
    """Templates owned by a user plus global ones (``user_id`` NULL)."""

    table = "resume_templates"
    singular = "template"
    plural = "templates"
    label = "Template"
    order_by = "is_default DESC, name, id"
    required_message = "Template name is required"
    fields = [
        Field("name", required=True),
        Field("layout_type"),
        Field("font"),
        Field("color_scheme"),
    ]

    def list(self, user_id: int, **filters) -> List[Dict[str, Any]]:
        with self.db.connection() as conn:
            rows = conn.fetch_all(
                f"SELECT * FROM {self.table} WHERE user_id = ? OR user_id IS NULL "
                f"ORDER BY {self.order_by}",
                (user_id,),
            )
        return [self._decode(row) for row in rows]

    def decorate(self, record):
        record["is_default"] = bool(record.get("is_default"))
        record["is_global"] = record.get("user_id") is None
        return record

    def set_default(self, template_id: int, user_id: int) -> Dict[str, Any]:
        """Make one of the user's own templates their only default."""
        with self.db.connection() as conn:
            if self._fetch_owned(conn, template_id, user_id) is None:
                raise self._not_found()
            conn.execute(
                f"UPDATE {self.table} SET is_default = ? WHERE user_id = ?", (False, user_id)
            )
            conn.execute(
                f"UPDATE {self.table} SET is_default = ? WHERE id = ? AND user_id = ?",
                (True, template_id, user_id),
            )
            row = self._fetch_owned(conn, template_id, user_id)
        return self._decode(row)


# ===== Jobs =====


class JobStore(ResourceStore):
    table = "jobs"
    singular = "job"
    plural = "jobs"
    label = "Job"
    required_message = "Title, company, and deadline are required."
    fields = [
        Field("title", required=True),
        Field("company", required=True),
        Field("deadline", "date", required=True),
        Field("location"),
        Field("salary_min", "int"),
        Field("salary_max", "int"),
        Field("url"),
        Field("description"),
        Field("industry"),
        Field("type"),
        Field("applied_on", "date"),
        Field("status", default="Interested", choices=STAGES),
        Field("notes"),
        Field("contact_name"),
        Field("contact_email"),
        Field("contact_phone"),
        Field("salary_notes"),
        Field("interview_feedback"),
        Field("resume_id", "int"),
        Field("cover_letter_id", "int"),
    ]

    def clean(self, values, existing=None):
        if existing is None and not values.get("applied_on"):
            values["applied_on"] = today().isoformat()
        low, high = values.get("salary_min"), values.get("salary_max")
        if low is not None and high is not None and low > high:
            raise ValidationError("salary_min cannot exceed salary_max")
        return values

    def decorate(self, record):
        record["archived"] = bool(record.get("archived"))
        record["days_in_stage"] = days_since(record.get("status_updated_at") or record.get("created_at"))
        record["days_until_deadline"] = days_until(record.get("deadline"))
        urgency, color = deadline_urgency(record.get("deadline"))
        record["deadline_urgency"] = urgency
        record["deadline_color"] = color
        return record

    # ----- history -----

    def _log_event(self, conn, job_id: int, event: str):
        conn.insert(
            "INSERT INTO application_history (job_id, event, timestamp) VALUES (?, ?, ?)",
            (job_id, event, utcnow_iso()),
        )

    def _log_materials(self, conn, job_id: int, resume_id, cover_letter_id):
        conn.insert(
            "INSERT INTO application_materials_history (job_id, resume_id, cover_letter_id, changed_at) "
            "VALUES (?, ?, ?, ?)",
            (job_id, resume_id, cover_letter_id, utcnow_iso()),
        )

    def after_create(self, conn, record):
        conn.execute(
            "UPDATE jobs SET status_updated_at = ? WHERE id = ?", (record["created_at"], record["id"])
        )
        self._log_event(conn, record["id"], f'Added with status "{record["status"]}"')
        if record.get("resume_id") or record.get("cover_letter_id"):
            self._log_materials(conn, record["id"], record.get("resume_id"), record.get("cover_letter_id"))

    def after_update(self, conn, before, changes):
        job_id = before["id"]
        if "status" in changes and changes["status"] != before.get("status"):
            conn.execute("UPDATE jobs SET status_updated_at = ? WHERE id = ?", (utcnow_iso(), job_id))
            self._log_event(conn, job_id, f'Status changed to "{changes["status"]}"')
        if "resume_id" in changes or "cover_letter_id" in changes:
            self._log_materials(
                conn,
                job_id,
                changes.get("resume_id", before.get("resume_id")),
                changes.get("cover_letter_id", before.get("cover_letter_id")),
            )

    # ----- queries -----

    def list(
        self,
        user_id: int,
        archived: bool = False,
        search: Optional[str] = None,
        status: Optional[str] = None,
        industry: Optional[str] = None,
        location: Optional[str] = None,
        salary_min: Optional[Any] = None,
        salary_max: Optional[Any] = None,
        date_from: Optional[Any] = None,
        date_to: Optional[Any] = None,
        sort_by: str = "date_added",
    ) -> List[Dict[str, Any]]:
        """
        Filtered job search.

        Unknown statuses and sort keys are ignored. Text filters are
        case-insensitive substring matches.
        """
        where = ["user_id = ?", "archived = ?"]
        params: List[Any] = [user_id, bool(archived)]

        if search:
            where.append(
                "(LOWER(title) LIKE ? OR LOWER(company) LIKE ? OR LOWER(COALESCE(description, '')) LIKE ?)"
            )
            pattern = f"%{search.strip().lower()}%"
            params += [pattern, pattern, pattern]

        if status and status.strip().lower() in (s.lower() for s in STAGES):
            where.append("LOWER(status) = ?")
            params.append(status.strip().lower())

        for column, value in (("industry", industry), ("location", location)):
            if value:
                where.append(f"LOWER(COALESCE({column}, '')) LIKE ?")
                params.append(f"%{value.strip().lower()}%")

        salary_field = self.field_map["salary_min"]
        low = salary_field.coerce(salary_min)
        if low is not None:
            where.append("salary_min >= ?")
            params.append(low)
        high = salary_field.coerce(salary_max)
        if high is not None:
            where.append("salary_max <= ?")
            params.append(high)

        deadline_field = self.field_map["deadline"]
        start = deadline_field.coerce(date_from)
        if start:
            where.append("deadline >= ?")
            params.append(start)
        end = deadline_field.coerce(date_to)
        if end:
            where.append("deadline <= ?")
            params.append(end)

        column = JOB_SORT_COLUMNS.get(sort_by, "created_at")
        sql = (
            f"SELECT * FROM jobs WHERE {' AND '.join(where)} "
            f"ORDER BY {column} IS NULL, {column} DESC, id DESC"
        )

        with self.db.connection() as conn:
            rows = conn.fetch_all(sql, params)
        return [self._decode(row) for row in rows]

    def get_with_history(self, job_id: int, user_id: int) -> Dict[str, Any]:
        with self.db.connection() as conn:
            row = self._fetch_owned(conn, job_id, user_id)
            if row is None:
                raise self._not_found()
            history = conn.fetch_all(
                "SELECT id, event, timestamp FROM application_history WHERE job_id = ? "
                "ORDER BY timestamp DESC, id DESC",
                (job_id,),
            )
        job = self._decode(row)
        job["history"] = history
        return job

    def set_status(self, job_id: int, user_id: int, status: Any) -> Dict[str, Any]:
        if not status:
            raise ValidationError("Status is required")
        status = self.field_map["status"].coerce(status)

        with self.db.connection() as conn:
            updated = conn.execute(
                "UPDATE jobs SET status = ?, status_updated_at = ? WHERE id = ? AND user_id = ?",
                (status, utcnow_iso(), job_id, user_id),
            )
            if updated == 0:
                raise self._not_found()
            self._log_event(conn, job_id, f'Status changed to "{status}"')
            row = self._fetch_owned(conn, job_id, user_id)

        logger.info(f"Job {job_id} moved to {status}")
        return self._decode(row)

    def set_materials(self, job_id: int, user_id: int, resume_id: Any, cover_letter_id: Any) -> Dict[str, Any]:
        id_field = self.field_map["resume_id"]
        resume_id = id_field.coerce(resume_id) or None
        cover_letter_id = id_field.coerce(cover_letter_id) or None

        with self.db.connection() as conn:
            updated = conn.execute(
                "UPDATE jobs SET resume_id = ?, cover_letter_id = ? WHERE id = ? AND user_id = ?",
                (resume_id, cover_letter_id, job_id, user_id),
            )
            if updated == 0:
                raise self._not_found()
            self._log_materials(conn, job_id, resume_id, cover_letter_id)
            row = self._fetch_owned(conn, job_id, user_id)
        return self._decode(row)

    def materials_history(self, job_id: int, user_id: int) -> List[Dict[str, Any]]:
        with self.db.connection() as conn:
            if self._fetch_owned(conn, job_id, user_id) is None:
                raise self._not_found()
            return conn.fetch_all(
                """
                SELECT h.id, h.changed_at, h.resume_id, h.cover_letter_id,
                       r.title AS resume_title, c.title AS cover_title
                FROM application_materials_history h
                LEFT JOIN resumes r ON r.id = h.resume_id AND r.user_id = ?
                LEFT JOIN cover_letters c ON c.id = h.cover_letter_id AND c.user_id = ?
                WHERE h.job_id = ?
                ORDER BY h.changed_at DESC, h.id DESC
                """,
                (user_id, user_id, job_id),
            )

    def set_archived(self, job_id: int, user_id: int, archived: bool) -> Dict[str, Any]:
        with self.db.connection() as conn:
            updated = conn.execute(
                "UPDATE jobs SET archived = ? WHERE id = ? AND user_id = ?",
                (bool(archived), job_id, user_id),
            )
            if updated == 0:
                raise self._not_found()
            self._log_event(conn, job_id, "Archived" if archived else "Restored from archive")
            row = self._fetch_owned(conn, job_id, user_id)
        return self._decode(row)

    def shift_deadlines(self, user_id: int, job_ids: Any, days_to_add: Any) -> List[Dict[str, Any]]:
        """Move the deadline of every listed job the user owns by ``days_to_add`` days."""
        if not isinstance(job_ids, list) or not job_ids:
            raise ValidationError("No job IDs provided")
        try:
            ids = [int(job_id) for job_id in job_ids]
            days = int(days_to_add)
        except (TypeError, ValueError):
            raise ValidationError("Invalid daysToAdd")
        if days == 0:
            raise ValidationError("Invalid daysToAdd")

        placeholders = ", ".join("?" for _ in ids)
        updated = []
        with self.db.connection() as conn:
            rows = conn.fetch_all(
                f"SELECT id, title, deadline FROM jobs WHERE user_id = ? AND id IN ({placeholders})",
                [user_id] + ids,
            )
            for row in rows:
                new_deadline = shift_date(row["deadline"], days)
                conn.execute(
                    "UPDATE jobs SET deadline = ? WHERE id = ? AND user_id = ?",
                    (new_deadline, row["id"], user_id),
                )
                updated.append({"id": row["id"], "title": row["title"], "deadline": new_deadline})

        logger.info(f"Shifted {len(updated)} deadline(s) by {days} day(s) for user {user_id}")
        return updated

    def stats(self, user_id: int) -> Dict[str, Any]:
        """Pipeline statistics across all of the user's jobs, archived included."""
        with self.db.connection() as conn:
            rows = conn.fetch_all(
                "SELECT status, deadline, applied_on, created_at, status_updated_at "
                "FROM jobs WHERE user_id = ?",
                (user_id,),
            )

        by_status = Counter(row["status"] for row in rows)
        jobs_by_status = [{"status": s, "count": by_status[s]} for s in STAGES if by_status[s]]
        jobs_by_status += [
            {"status": s, "count": n} for s, n in sorted(by_status.items(), key=lambda i: str(i[0]))
            if s not in STAGES
        ]

        months = Counter(f"{str(row['created_at'])[:7]}-01" for row in rows if row["created_at"])
        monthly_volume = [{"month": m, "count": months[m]} for m in sorted(months)]

        submitted = [row for row in rows if row["status"] != "Interested"]
        responded = [row for row in submitted if row["status"] in RESPONSE_STAGES]
        response_rate = round(len(responded) / len(submitted) * 100, 1) if submitted else 0

        dated = [row for row in submitted if row["applied_on"] and row["deadline"]]
        on_time = [row for row in dated if parse_date(row["applied_on"]) <= parse_date(row["deadline"])]
        adherence_rate = round(len(on_time) / len(dated) * 100, 1) if dated else 0

        offer_days = []
        for row in rows:
            if row["status"] != "Offer" or not row["status_updated_at"]:
                continue
            elapsed = parse_timestamp(row["status_updated_at"]) - parse_timestamp(row["created_at"])
            offer_days.append(max(0.0, elapsed.total_seconds() / 86400.0))
        avg_time_to_offer = round(sum(offer_days) / len(offer_days), 1) if offer_days else 0

        return {
            "totalJobs": len(rows),
            "jobsByStatus": jobs_by_status,
            "monthlyVolume": monthly_volume,
            "responseRate": response_rate,
            "adherenceRate": adherence_rate,
            "avgTimeToOffer": avg_time_to_offer,
        }


# ===== Companies =====

PLACEHOLDER_DESCRIPTION = "No description yet."


class CompanyStore(ResourceStore):
    """
    Notes a user keeps on the companies they apply to.

    Companies are addressed by name, compared case-insensitively, and a
    lookup by name creates an empty placeholder the first time a company is
    seen.
    """

    table = "companies"
    singular = "company"
    plural = "companies"
    label = "Company"
    order_by = "name, id"
    unique_field = "name"
    required_message = "Company name required"
    duplicate_message = "A company with that name already exists"
    fields = [
        Field("name", required=True),
        Field("size"),
        Field("industry"),
        Field("location"),
        Field("website"),
        Field("description", default=PLACEHOLDER_DESCRIPTION),
        Field("mission"),
        Field("news"),
        Field("glassdoor_rating", "float"),
        Field("contact_email"),
        Field("contact_phone"),
        Field("logo_url"),
    ]

    def clean(self, values, existing=None):
        rating = values.get("glassdoor_rating")
        if rating is not None and not 0 <= rating <= 5:
            raise ValidationError("glassdoor_rating must be between 0 and 5")
        return values

    def decorate(self, record):
        # Unset text comes back as "", an unset rating as 0
        for field in self.fields:
            if record.get(field.name) is None:
                record[field.name] = 0 if field.kind == "float" else ""
        return record

    def _fetch_by_name(self, conn, user_id: int, name: str) -> Optional[Dict[str, Any]]:
        return conn.fetch_one(
            f"SELECT * FROM {self.table} WHERE user_id = ? AND LOWER(name) = LOWER(?)",
            (user_id, name),
        )

    def _clean_name(self, name: Any) -> str:
        name = name.strip() if isinstance(name, str) else ""
        if not name:
            raise ValidationError(self.required_message)
        return name

    def get_by_name(self, user_id: int, name: Any) -> Dict[str, Any]:
        """The named company, created as a placeholder when missing."""
        name = self._clean_name(name)
        with self.db.connection() as conn:
            row = self._fetch_by_name(conn, user_id, name)
        if row is not None:
            return self._decode(row)
        try:
            return self.create(user_id, {"name": name})
        except DuplicateError:
            # Another request created it first
            with self.db.connection() as conn:
                return self._decode(self._fetch_by_name(conn, user_id, name))

    def save(self, user_id: int, data: Dict[str, Any]) -> Tuple[Dict[str, Any], bool]:
        """
        Create the named company, or overwrite every field of the existing one.

        Returns:
            (company, created)
        """
        data = self._require_mapping(data)
        name = self._clean_name(data.get("name"))
        with self.db.connection() as conn:
            row = self._fetch_by_name(conn, user_id, name)
        if row is None:
            return self.create(user_id, data), True

        values = {f.name: data.get(f.name) for f in self.fields}
        values["name"] = row["name"]
        return self.update(row["id"], user_id, values), False

    def update_by_name(self, user_id: int, name: Any, data: Dict[str, Any]) -> Dict[str, Any]:
        """Partial update of the named company; a body with no known fields changes nothing."""
        data = self._require_mapping(data)
        company = self.get_by_name(user_id, name)
        if not any(f.name in data for f in self.fields):
            return company
        return self.update(company["id"], user_id, data)

    def set_logo(self, user_id: int, name: Any, url: str) -> Dict[str, Any]:
        company = self.get_by_name(user_id, name)
        return self.update(company["id"], user_id, {"logo_url": url})


# ===== Upserts =====


class ProfileStore:
    """One profile row per user, created on first save."""

    FIELDS = ["full_name", "email", "phone", "location", "title", "bio", "industry", "experience"]

    def __init__(self, db):
        self.db = db

    def get(self, user_id: int) -> Dict[str, Any]:
        with self.db.connection() as conn:
            row = conn.fetch_one(
                f"SELECT {', '.join(self.FIELDS)}, picture_url FROM profiles WHERE user_id = ?",
                (user_id,),
            )
        return row or {}

    def _upsert(self, user_id: int, values: Dict[str, Any]):
        with self.db.connection() as conn:
            existing = conn.fetch_one("SELECT id FROM profiles WHERE user_id = ?", (user_id,))
            if existing:
                assignments = ", ".join(f"{name} = ?" for name in values)
                conn.execute(
                    f"UPDATE profiles SET {assignments} WHERE user_id = ?",
                    list(values.values()) + [user_id],
                )
            else:
                columns = ["user_id"] + list(values) + ["created_at"]
                placeholders = ", ".join("?" for _ in columns)
                conn.insert(
                    f"INSERT INTO profiles ({', '.join(columns)}) VALUES ({placeholders})",
                    [user_id] + list(values.values()) + [utcnow_iso()],
                )

    def save(self, user_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        """Write every profile field; absent ones are cleared."""
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")
        values = {}
        for name in self.FIELDS:
            value = data.get(name)
            if value is not None:
                value = str(value).strip() or None
            values[name] = value
        self._upsert(user_id, values)
        return self.get(user_id)

    def set_picture(self, user_id: int, url: Any) -> str:
        if not url or not isinstance(url, str):
            raise ValidationError("Picture url is required")
        self._upsert(user_id, {"picture_url": url})
        return url


class SkillProgressStore:
    """Learning status per (user, skill); skill names are compared lower-cased."""

    def __init__(self, db):
        self.db = db

    def list(self, user_id: int) -> List[Dict[str, Any]]:
        with self.db.connection() as conn:
            return conn.fetch_all(
                "SELECT id, skill, status, updated_at FROM skill_progress "
                "WHERE user_id = ? ORDER BY updated_at DESC, id DESC",
                (user_id,),
            )

    def set_status(self, user_id: int, skill: str, status: Any) -> Dict[str, Any]:
        skill = (skill or "").strip().lower()
        if not skill:
            raise ValidationError("Skill name required")
        if status not in SKILL_PROGRESS_STATUSES:
            raise ValidationError("Invalid status value")

        now = utcnow_iso()
        with self.db.connection() as conn:
            updated = conn.execute(
                "UPDATE skill_progress SET status = ?, updated_at = ? WHERE user_id = ? AND skill = ?",
                (status, now, user_id, skill),
            )
            if updated == 0:
                conn.insert(
                    "INSERT INTO skill_progress (user_id, skill, status, updated_at) VALUES (?, ?, ?, ?)",
                    (user_id, skill, status, now),
                )
            return conn.fetch_one(
                "SELECT id, skill, status, updated_at FROM skill_progress WHERE user_id = ? AND skill = ?",
                (user_id, skill),
            )


def build_stores(db) -> Dict[str, Any]:
    """Instantiate every store against one database handle."""
    return {
        "education": EducationStore(db),
        "employment": EmploymentStore(db),
        "skills": SkillStore(db),
        "certifications": CertificationStore(db),
        "projects": ProjectStore(db),
        "section_presets": SectionPresetStore(db),
        "resume_presets": ResumePresetStore(db),
        "cover_letters": CoverLetterStore(db),
        "cover_letter_templates": CoverLetterTemplateStore(db),
        "resumes": ResumeStore(db),
        "resume_templates": ResumeTemplateStore(db),
        "jobs": JobStore(db),
        "companies": CompanyStore(db),
        "profiles": ProfileStore(db),
        "skill_progress": SkillProgressStore(db),
    }
