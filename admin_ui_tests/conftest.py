import logging

import pytest
import pytest_asyncio

from admin_ui_tests.browser import Browser
from admin_ui_tests.config import UiTargetProfile, settings
from admin_ui_tests.errors import ToolError
from admin_ui_tests.mailbox import poller_from_settings
from admin_ui_tests.playwright_client import PlaywrightClient
from admin_ui_tests.users_page import AppUsersPage
from admin_ui_tests.workflows import login_with_otp

logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "live: talks to the deployed portal and mailbox (needs UI_LIVE=1)")
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def pytest_collection_modifyitems(config, items):
    if settings.live:
        return
    skip_live = pytest.mark.skip(reason="live scenario: set UI_LIVE=1 to run against the deployment")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item, call):
    outcome = yield
    report = outcome.get_result()
    setattr(item, f"rep_{report.when}", report)


# ============================================================================
# Browser fixtures
# ============================================================================

@pytest_asyncio.fixture()
async def playwright_client():
    """Launch Playwright with one isolated context for the scenario."""
    async with PlaywrightClient() as client:
        yield client


@pytest_asyncio.fixture()
async def browser(request, playwright_client):
    """Browser wrapper on the scenario page; screenshots the page if the test fails."""
    browser = Browser(playwright_client.page)
    yield browser

    report = getattr(request.node, "rep_call", None)
    if report is not None and report.failed:
        try:
            path = await browser.screenshot(f"failed-{request.node.name}")
            logger.info(f"Saved failure screenshot: {path}")
        except ToolError as exc:
            logger.warning(f"Could not capture failure screenshot: {exc}")


@pytest.fixture()
def mailbox_poller(playwright_client):
    """Verification-code poller for the configured MAILBOX_BACKEND."""
    return poller_from_settings(playwright_client)


@pytest_asyncio.fixture()
async def admin_browser(browser, mailbox_poller):
    """Browser already logged in as the admin identity."""
    await login_with_otp(browser, mailbox_poller)
    return browser


@pytest_asyncio.fixture()
async def users_page(admin_browser):
    """App Users view, opened from the post-login navigation."""
    return await AppUsersPage(admin_browser).open()


def _profile_id(profile: UiTargetProfile) -> str:
    return profile.name


@pytest.fixture(params=settings.profiles(), ids=_profile_id)
def active_profile(request):
    """Activate each configured target profile for the test run."""
    profile: UiTargetProfile = request.param
    with settings.use_profile(profile):
        yield profile
