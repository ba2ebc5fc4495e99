"""
Configuration constants for RISKI.

Module-level values are the hard limits of the engine. DEFAULT_CONFIG
holds the Flask app.config defaults; create_app() loads them and then
applies caller overrides, and services receive the values through their
constructors.

IMPORTANT: No unicode characters allowed in this file (Windows charmap constraint).
"""

# Reserved pseudo-parameter carrying the whole page state as k=v|k=v
PAGESTATE_KEY = "pagestate"

# Joins the key=value pairs of the pagestate pseudo-parameter
PAGESTATE_DELIMITER = "|"

# Sweep limits (graph endpoint)
MAX_DATA_POINTS = 1000
MAX_SERIES = 10
SWEEP_TIMEOUT_SECONDS = 5.0

# Element attribute listing the page-state keys an element owns
MANAGED_KEYS_ATTR = "data-managed-pagestate-keys"

# Model lookup suffix for data sub-pages: "<page>/Data:<name>"
DATA_SUBPAGE = "Data"

# Interim and waiting markup shown by client widgets
CALCULATING_HTML = "<i>Calculating...</i>"
LOADING_GRAPH_HTML = "<p><i>Loading graph...</i></p>"
DISPLAY_ERROR_HTML = "Error: Unable to update risk display"

DEFAULT_CONFIG = {
    # Debug listing of missing names instead of fallback HTML
    "RISKI_DEBUG": False,
    # Wall-clock budget for one sweep request, seconds
    "RISKI_SWEEP_TIMEOUT": SWEEP_TIMEOUT_SECONDS,
    # Load data/demo_pages.py into the store at start-up
    "RISKI_SEED_DEMO": True,
}
