"""
Jinja2 template environment shared by the page routes and the error handler
"""
from pathlib import Path

from fastapi.templating import Jinja2Templates

from newsdesk.core.config import settings
from newsdesk.services.constants import CATEGORIES, COUNTRIES, get_category_icon
from newsdesk.utils.news import build_detail_url

TEMPLATES_DIR = Path(__file__).resolve().parent.parent.parent / "templates"
STATIC_DIR = Path(__file__).resolve().parent.parent.parent / "static"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
templates.env.globals.update(
    project_name=settings.PROJECT_NAME,
    nav_categories=CATEGORIES,
    nav_countries=COUNTRIES,
    detail_url=build_detail_url,
    category_icon=get_category_icon,
)
