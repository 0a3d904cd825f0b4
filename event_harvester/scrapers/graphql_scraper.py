"""
Browser tier: capture one live GraphQL pagination request, then replay it.

The static page only carries the first page of a listing. A headless browser
is scrolled until the page issues its own GraphQL request; that request's body
and the session cookies are kept as a replay template, and every following
page is fetched over plain HTTP by swapping the ``cursor`` variable.
"""
import asyncio
import json
import logging
from typing import Optional
from urllib.parse import quote_plus, unquote_plus

from playwright.async_api import Browser, Page, Request, async_playwright
from playwright.async_api import Error as PlaywrightError

from .. import config
from ..errors import CaptureAborted, DecodeMiss
from ..extraction import decode_first_document
from ..http_client import RetryingClient
from ..models import ListingPage, ReplayTemplate, SourceType
from .html_scraper import Dispatch
from .sources import graphql_listing_page, page_event_ids

logger = logging.getLogger(__name__)

CLICK_TIMEOUT_MS = 5000
SCROLL_SCRIPT = "(step) => { window.scrollBy(0, step); return document.body.scrollHeight; }"


def is_graphql_request(request: Request) -> bool:
    return any(marker in request.url for marker in config.GRAPHQL_PATH_MARKERS)


def serialize_cookies(cookies: list[dict]) -> str:
    return "; ".join(f"{cookie['name']}={cookie['value']}" for cookie in cookies)


async def _best_effort(description: str, action) -> None:
    """Run a UI step whose target may legitimately be missing."""
    try:
        await action()
    except PlaywrightError as e:
        logger.debug(f"{description} skipped: {type(e).__name__}")


async def _open_page(browser: Browser, url: str) -> Page:
    context = await browser.new_context(extra_http_headers=config.BROWSER_HEADERS)
    page = await context.new_page()
    await page.goto(url, wait_until="networkidle")
    return page


async def _handle_dialog_windows(page: Page, delay: float) -> None:
    async def decline_cookies():
        button = await page.query_selector(config.DECLINE_COOKIES_SELECTOR)
        if button:
            await button.click()

    await _best_effort("Cookie dialog", decline_cookies)
    await asyncio.sleep(delay)
    await _best_effort("Overlay click", lambda: page.click("body", force=True))
    await asyncio.sleep(delay)
    await _best_effort("Escape", lambda: page.keyboard.press("Escape"))


async def _scroll_until_graphql(page: Page, capture: asyncio.Future, delay: float, max_scrolls: int) -> Request:
    """
    Scroll down step by step until ``capture`` resolves.

    Raises CaptureAborted when the scroll height stops growing (nothing more
    is loading) or when the scroll budget runs out.
    """
    last_height = 0
    for _ in range(max_scrolls):
        height = await page.evaluate(SCROLL_SCRIPT, config.SCROLL_STEP_PX)
        await asyncio.sleep(delay)

        if height == last_height:
            raise CaptureAborted(f"scroll height stalled at {height}")
        last_height = height

        done, _ = await asyncio.wait({capture}, timeout=delay)
        if capture in done:
            return capture.result()

    raise CaptureAborted(f"no GraphQL request after {max_scrolls} scrolls")


async def capture_graphql(url: str, source_type: SourceType) -> Optional[ReplayTemplate]:
    """Open ``url`` in a headless browser and capture a replayable GraphQL request, or None."""
    delay = config.SCROLL_DELAY_MS / 1000

    try:
        async with async_playwright() as playwright:
            browser = await playwright.chromium.launch(headless=config.BROWSER_HEADLESS, args=config.BROWSER_ARGS)
            try:
                page = await _open_page(browser, url)
                await _handle_dialog_windows(page, delay)

                capture = asyncio.ensure_future(
                    page.wait_for_event("request", predicate=is_graphql_request, timeout=0)
                )
                try:
                    if source_type == SourceType.GROUP:
                        await _best_effort(
                            "Group 'See more'",
                            lambda: page.click(config.GROUP_SEE_MORE_EVENTS_SELECTOR, timeout=CLICK_TIMEOUT_MS),
                        )
                    request = await _scroll_until_graphql(page, capture, delay, config.MAX_SCROLLS)
                finally:
                    capture.cancel()
                    await asyncio.gather(capture, return_exceptions=True)

                post_data = request.post_data
                if not post_data:
                    raise CaptureAborted(f"captured request to {request.url} has no body")
                cookies = serialize_cookies(await page.context.cookies())
            finally:
                await browser.close()
    except CaptureAborted as e:
        logger.info(f"{url}: no further pages ({e})")
        return None
    except PlaywrightError as e:
        logger.error(f"{url}: browser capture error: {type(e).__name__}: {e}")
        return None

    logger.info(f"{url}: captured GraphQL request ({len(post_data)} bytes)")
    return ReplayTemplate(post_data=post_data, cookies=cookies)


def replace_param_value(post_data: str, param: str, value: str) -> str:
    """
    Return ``post_data`` with only ``param`` set to ``value``.

    The parameter is looked up inside the JSON ``variables`` form field first,
    then as a top-level form field. All other form pairs are kept verbatim.
    """
    pairs = post_data.split("&")

    for i, pair in enumerate(pairs):
        key, _, raw = pair.partition("=")
        if unquote_plus(key) != "variables":
            continue
        try:
            variables = json.loads(unquote_plus(raw))
        except json.JSONDecodeError:
            break
        if not isinstance(variables, dict):
            break
        variables[param] = value
        encoded = quote_plus(json.dumps(variables, separators=(",", ":"), ensure_ascii=False))
        pairs[i] = f"{key}={encoded}"
        return "&".join(pairs)

    for i, pair in enumerate(pairs):
        key, _, _ = pair.partition("=")
        if unquote_plus(key) == param:
            pairs[i] = f"{key}={quote_plus(value)}"
            return "&".join(pairs)

    logger.warning(f"No '{param}' parameter in captured request body, replaying it unchanged")
    return post_data


def decode_graphql_body(body: str) -> dict:
    try:
        document = decode_first_document(body)
    except ValueError as e:
        raise DecodeMiss(f"GraphQL response is not JSON: {e}") from e
    data = document.get("data") if isinstance(document, dict) else None
    if not isinstance(data, dict):
        raise DecodeMiss("GraphQL response has no 'data' object")
    return data


async def read_graphql_page(client: RetryingClient, template: ReplayTemplate, source_type: SourceType) -> ListingPage:
    """
    Replay the template once.
    An empty edge list ends pagination even when the server reports more pages.
    """
    body = await client.post_form(config.GRAPHQL_URL, template.post_data, template.cookies)
    if body is None:
        return ListingPage()

    try:
        data = decode_graphql_body(body)
    except DecodeMiss as e:
        logger.error(f"{source_type.value}: {e}")
        return ListingPage()

    page = graphql_listing_page(source_type, data)
    if not page.nodes:
        return ListingPage()
    return page


async def graphql_scrape_events(
    client: RetryingClient,
    url: str,
    source_type: SourceType,
    dispatch: Dispatch,
    derestrict: bool = False,
) -> int:
    """
    Capture a replay template for ``url`` and page through the listing with it.
    Returns the number of pages replayed.
    """
    template = await capture_graphql(url, source_type)
    if template is None:
        return 0

    pending = []
    pages = 0

    try:
        while True:
            page = await read_graphql_page(client, template, source_type)
            pages += 1
            event_ids = page_event_ids(source_type, page)
            logger.debug(f"{url}: replay page {pages} -> {len(event_ids)} events, has_next_page={page.has_next_page}")

            if derestrict:
                pending.append(asyncio.ensure_future(dispatch(event_ids)))
            else:
                await dispatch(event_ids)

            if not page.has_next_page:
                break
            if not page.end_cursor:
                logger.warning(f"{url}: server reported more pages without a cursor, stopping")
                break
            template.post_data = replace_param_value(template.post_data, "cursor", page.end_cursor)
    finally:
        # Detail fetches already dispatched must land even if a later page fails
        if pending:
            results = await asyncio.gather(*pending, return_exceptions=True)
            for result in results:
                if isinstance(result, Exception):
                    logger.error(f"{url}: detail dispatch failed: {type(result).__name__}: {result}")

    logger.info(f"{url}: replayed {pages} GraphQL pages")
    return pages
