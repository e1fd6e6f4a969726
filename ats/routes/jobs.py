"""
Jobs Blueprint - application pipeline

Job postings the user is tracking, their stage history, linked materials,
archiving and pipeline statistics.
"""

import logging

from flask import Blueprint, jsonify, request

from ats.auth import authenticate_request
from ats.routes.common import current_user_id, get_store, json_body

logger = logging.getLogger(__name__)

jobs_bp = Blueprint("jobs", __name__, url_prefix="/api/jobs")
jobs_bp.before_request(authenticate_request)


@jobs_bp.route("", methods=["GET"])
def list_jobs():
    """
    Retrieve active (non-archived) jobs with filtering.

    Route: GET /api/jobs

    Query Parameters:
        search (str): Substring of title, company or description
        status (str): One of the pipeline stages
        industry, location (str): Substring filters
        salaryMin, salaryMax (int): Salary bounds
        dateFrom, dateTo (date): Deadline window
        sortBy (str): date_added (default), deadline, salary or company

    Returns:
        JSON: {jobs: [...]} each with days_in_stage and deadline urgency

    Examples:
        GET /api/jobs?status=Applied&sortBy=deadline
    """
    args = request.args
    jobs = get_store("jobs").list(
        current_user_id(),
        search=args.get("search"),
        status=args.get("status"),
        industry=args.get("industry"),
        location=args.get("location"),
        salary_min=args.get("salaryMin"),
        salary_max=args.get("salaryMax"),
        date_from=args.get("dateFrom"),
        date_to=args.get("dateTo"),
        sort_by=args.get("sortBy", "date_added"),
    )
    return jsonify({"jobs": jobs})


@jobs_bp.route("", methods=["POST"])
def create_job():
    """Create a job; title, company and deadline are required."""
    job = get_store("jobs").create(current_user_id(), json_body())
    return jsonify({"message": "Job created successfully", "job": job}), 201


@jobs_bp.route("/archived", methods=["GET"])
def list_archived_jobs():
    jobs = get_store("jobs").list(current_user_id(), archived=True)
    return jsonify({"jobs": jobs})


@jobs_bp.route("/stats", methods=["GET"])
def job_stats():
    """Pipeline statistics: totals, per-stage counts, monthly volume and rates."""
    return jsonify(get_store("jobs").stats(current_user_id()))


@jobs_bp.route("/bulk/deadline", methods=["PUT"])
def bulk_shift_deadline():
    """
    Move several deadlines at once.

    Request Body (JSON):
        jobIds: list of job ids
        daysToAdd: non-zero integer (negative moves deadlines earlier)

    Jobs the caller does not own are skipped silently.
    """
    data = json_body()
    updated = get_store("jobs").shift_deadlines(
        current_user_id(), data.get("jobIds"), data.get("daysToAdd")
    )
    return jsonify({"updated": updated})


@jobs_bp.route("/<int:job_id>", methods=["GET"])
def get_job(job_id):
    return jsonify({"job": get_store("jobs").get_with_history(job_id, current_user_id())})


@jobs_bp.route("/<int:job_id>", methods=["PUT", "PATCH"])
def update_job(job_id):
    """
    Partially update a job.

    A status change stamps status_updated_at and appends a history event; a
    resume or cover letter change appends a materials-history row.
    """
    job = get_store("jobs").update(job_id, current_user_id(), json_body())
    return jsonify({"message": "Job updated successfully", "job": job})


@jobs_bp.route("/<int:job_id>", methods=["DELETE"])
def delete_job(job_id):
    get_store("jobs").delete(job_id, current_user_id())
    return jsonify({"message": "Job deleted successfully"})


@jobs_bp.route("/<int:job_id>/status", methods=["PUT"])
def update_job_status(job_id):
    data = json_body()
    job = get_store("jobs").set_status(job_id, current_user_id(), data.get("status"))
    return jsonify({"message": "Status updated", "job": job})


@jobs_bp.route("/<int:job_id>/materials", methods=["PUT"])
def update_job_materials(job_id):
    data = json_body()
    job = get_store("jobs").set_materials(
        job_id, current_user_id(), data.get("resume_id"), data.get("cover_letter_id")
    )
    return jsonify({"message": "Materials updated successfully", "job": job})


@jobs_bp.route("/<int:job_id>/materials-history", methods=["GET"])
def job_materials_history(job_id):
    history = get_store("jobs").materials_history(job_id, current_user_id())
    return jsonify({"history": history})


@jobs_bp.route("/<int:job_id>/archive", methods=["PUT"])
def archive_job(job_id):
    job = get_store("jobs").set_archived(job_id, current_user_id(), True)
    return jsonify({"message": "Job archived", "job": job})


@jobs_bp.route("/<int:job_id>/restore", methods=["PUT"])
def restore_job(job_id):
    job = get_store("jobs").set_archived(job_id, current_user_id(), False)
    return jsonify({"message": "Job restored", "job": job})
