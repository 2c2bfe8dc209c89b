"""
Message templates for outgoing invoice and reminder notices.

Templates are Jinja2 files rendered into plain-text e-mail bodies.
"""
from pathlib import Path
from jinja2 import Template

# Template directory
TEMPLATE_DIR = Path(__file__).parent

# Available templates
TEMPLATES = {
    "invoice": "invoice.txt.j2",
    "gentle": "reminder_gentle.txt.j2",
    "due_today": "reminder_due_today.txt.j2",
    "firm": "reminder_firm.txt.j2",
    "final": "reminder_final.txt.j2",
    "reminder": "reminder_generic.txt.j2",
}


def get_template_path(name: str) -> Path:
    """Get path to a template file."""
    if name not in TEMPLATES:
        raise ValueError(f"Unknown template: {name}. Valid: {list(TEMPLATES.keys())}")
    return TEMPLATE_DIR / TEMPLATES[name]


def load_template(name: str) -> str:
    """Load template contents."""
    return get_template_path(name).read_text(encoding="utf-8")


def render_message(name: str, **context) -> str:
    """Render a template; reminder types without their own file use the generic one."""
    if name not in TEMPLATES:
        name = "reminder"
    return Template(load_template(name)).render(**context).strip()
