"""
WSGI entry point of __app_name__.

    gunicorn -c gunicorn.conf.py wsgi:app
"""

from __future__ import annotations

from pathlib import Path

from sitewire import Application

ROOT = Path(__file__).resolve().parent

app = Application.from_directory(ROOT)
