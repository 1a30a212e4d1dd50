from .app import create_app
from .rendering import render_resources_html

__all__ = ["create_app", "render_resources_html"]
