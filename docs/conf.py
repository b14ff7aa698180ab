import os
import sys

sys.path.insert(0, os.path.abspath(".."))

project = "urt_daa"
author = "urt_daa contributors"
release = "0.1.0"

extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.napoleon",
]

autodoc_mock_imports = ["rpy2", "matplotlib"]

html_theme = "sphinx_rtd_theme"

exclude_patterns = ["_build"]
