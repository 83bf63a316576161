"""Sphinx configuration for Grace Church API documentation."""

import os
import sys
from datetime import datetime

sys.path.insert(0, os.path.abspath(".."))

project = "Grace Church API"
current_year = datetime.now().year
copyright = f"{current_year}, Grace Church"
author = "Grace Church Web Team"

extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.napoleon",
]

autodoc_mock_imports = ["cloudinary", "fastapi_mail"]

templates_path = ["_templates"]
exclude_patterns: list[str] = []

html_theme = "alabaster"

html_static_path = ["_static"]
