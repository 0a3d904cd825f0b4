"""Configuration defaults, URL shapes and page selectors for the event harvester."""
import os


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, str(default)).strip().lower() not in {"0", "false", "no"}


# Run defaults (overridable per run through HarvestOptions)
DEFAULT_CONCURRENCY = int(os.getenv("HARVEST_CONCURRENCY", "10"))
DEFAULT_DERESTRICT = _env_bool("HARVEST_DERESTRICT", False)
DEFAULT_HTTP_REQ_RETRIES = int(os.getenv("HTTP_REQ_RETRIES", "5"))
DEFAULT_HTTP_REQ_RETRY_DELAY_MS = int(os.getenv("HTTP_REQ_RETRY_DELAY_MS", "1000"))
DEFAULT_HTTP_REQ_TIMEOUT_MS = int(os.getenv("HTTP_REQ_TIMEOUT_MS", "5000"))
# Only one browser launch at a time is allowed on AWS Lambda
DEFAULT_IS_AWS = _env_bool("HARVEST_IS_AWS", True)
DEFAULT_OUTPUT_FILE = os.getenv("HARVEST_OUTPUT_FILE") or None

BROWSER_HEADLESS = _env_bool("BROWSER_HEADLESS", True)
BROWSER_POOL_SIZE = int(os.getenv("BROWSER_POOL_SIZE", "10"))
BROWSER_ARGS = ["--no-sandbox", "--disable-setuid-sandbox", "--disable-dev-shm-usage"]

# Capture budget
SCROLL_DELAY_MS = 100
SCROLL_STEP_PX = 1000
MAX_SCROLLS = 20

# URL shapes
SEARCH_QUERY_PREFIX = "https://www.facebook.com/events/search/?q="
GROUP_PREFIX = "https://www.facebook.com/groups/"
GROUP_POSTFIX = "/events"
PAGE_PREFIX = "https://www.facebook.com/"
PAGE_POSTFIX = "/upcoming_hosted_events"
EVENT_PREFIX = "https://www.facebook.com/events/"
GRAPHQL_URL = "https://www.facebook.com/api/graphql/"
GRAPHQL_PATH_MARKERS = ("/api/graphql", "graphql?")

# Page elements
DECLINE_COOKIES_SELECTOR = '[role="button"][aria-label="Decline optional cookies"]'
GROUP_SEE_MORE_EVENTS_SELECTOR = '[role="button"][aria-label="See more"]'

# HTTP headers
HTML_HEADERS = {
    "accept": "text/html",
    "sec-fetch-mode": "navigate",
    "user-agent": "Mozilla/5.0",
}

GRAPHQL_HEADERS = {
    "Content-Type": "application/x-www-form-urlencoded",
    "User-Agent": "Mozilla/5.0",
}

BROWSER_HEADERS = {"Accept-Language": "en-US,en;q=0.9"}
