"""
Routes Package - Flask Blueprints for the ATS API

Blueprint structure:
- main_bp: service index and /api/health
- accounts_bp: /api/auth (register, login, password reset, account)
- CRUD blueprints: education, employment, skills, certifications,
  projects, cover letters, resume presets
- jobs_bp: /api/jobs pipeline
- resumes_bp: /api/resumes, templates and import
- section_presets_bp, skill_progress_bp, profile_bp
- uploads_bp: /api/upload, /api/upload-profile-pic, /uploads/<name>
- exports_bp: /api/cover-letter/export/{pdf,docx,text}
- companies_bp: /api/companies, company notes by name and logos
- cover_letter_templates_bp: /api/cover-letter/templates library
"""

import logging

from .accounts import accounts_bp
from .companies import companies_bp
from .cover_letter_templates import cover_letter_templates_bp
from .exports import exports_bp
from .jobs import jobs_bp
from .main import main_bp
from .presets import section_presets_bp
from .profile import profile_bp
from .resources import crud_blueprints
from .resumes import resumes_bp
from .skill_progress import skill_progress_bp
from .uploads import uploads_bp

logger = logging.getLogger(__name__)


def register_all_blueprints(app):
    """
    Register all Flask blueprints with the application.

    Args:
        app: Flask application instance
    """
    blueprints = [
        main_bp,
        accounts_bp,
        jobs_bp,
        resumes_bp,
        section_presets_bp,
        skill_progress_bp,
        profile_bp,
        uploads_bp,
        exports_bp,
        companies_bp,
        cover_letter_templates_bp,
    ]
    blueprints += crud_blueprints()

    for bp in blueprints:
        app.register_blueprint(bp)

    logger.info(f"Registered {len(blueprints)} blueprints")


__all__ = [
    "register_all_blueprints",
    "main_bp",
]
