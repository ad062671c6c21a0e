# playwright_scenarios/service_registry_yaml.py
import asyncio, logging
from playwright.async_api import async_playwright
from cas_e2e import cas
from cas_e2e.settings import settings

async def main():
    async with async_playwright() as pw:
        browser = await pw.chromium.launch(**cas.browser_options())
        try:
            page = await cas.new_page(browser)
            await cas.goto(page, settings.login_url())

            await cas.login_with(page)
            url = page.url
            print(f"Page url: {url}")
            await cas.assert_ticket_parameter(page)
        finally:
            await browser.close()

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
