"""
End-to-end tests against a real headless Chromium.

Skipped when Playwright's Chromium cannot be launched. Paint order here is
the walker's traversal order, so overlays are placed after the elements
they cover in the document.
"""

import pytest
from pytest_httpserver import HTTPServer

from dev_browser.dom.service import extract_dom_tree, get_llm_tree
from dev_browser.dom.views import GetTreeOptions

playwright_api = pytest.importorskip('playwright.async_api')

OVERLAY_PAGE = """
<html><body style="margin: 0">
	<button id="buy" style="position: absolute; left: 20px; top: 20px; width: 120px; height: 40px">Buy</button>
	<div id="overlay" style="position: absolute; left: 0; top: 0; width: 400px; height: 300px; background: {background}"></div>
</body></html>
"""

FORM_PAGE = """
<html><body>
	<div id="app">
		<ul>
			<li><a href="#one">One</a></li>
			<li style="display: none"><a href="#hidden">Hidden</a></li>
			<li><a href="#three">Three</a></li>
		</ul>
		<form>
			<input name="email" placeholder="Email">
			<input type="radio" name="plan" value="free">
			<input type="radio" name="plan" value="pro">
			<select><option>A</option><option selected>B</option></select>
			<button type="submit"><span>Send</span></button>
		</form>
		<div data-testid="widget"></div>
	</div>
	<div id="scroller" style="height: 100px; overflow-y: auto"><p style="height: 500px">Long text</p></div>
</body></html>
"""

SHADOW_PAGE = """
<html><body>
	<my-widget></my-widget>
	<script>
		const host = document.querySelector('my-widget');
		host.attachShadow({ mode: 'open' }).innerHTML = '<button>Inside shadow</button>';
	</script>
</body></html>
"""

FRAME_HOST_PAGE = """
<html><body>
	<button>Outside</button>
	<iframe src="/frame" style="width: 400px; height: 200px"></iframe>
</body></html>
"""

FRAME_PAGE = '<html><body><button id="inner">Inside frame</button></body></html>'


@pytest.fixture(scope='module')
def http_server():
	server = HTTPServer()
	server.start()
	yield server
	server.clear()
	server.stop()


@pytest.fixture
async def page():
	async with playwright_api.async_playwright() as playwright:
		try:
			browser = await playwright.chromium.launch(headless=True)
		except Exception as e:
			pytest.skip(f'Chromium is not available: {e}')
		page = await browser.new_page(viewport={'width': 800, 'height': 600})
		yield page
		await browser.close()


def serve(http_server: HTTPServer, path: str, html: str) -> str:
	http_server.expect_request(path).respond_with_data(html, content_type='text/html')
	return http_server.url_for(path)


class TestOcclusion:
	async def test_opaque_overlay_hides_button(self, http_server, page):
		await page.goto(serve(http_server, '/opaque', OVERLAY_PAGE.format(background='white')))

		state = await get_llm_tree(page)

		assert '#buy' not in state.selector_map.values()

	async def test_transparent_overlay_keeps_button(self, http_server, page):
		await page.goto(serve(http_server, '/transparent', OVERLAY_PAGE.format(background='transparent')))

		state = await get_llm_tree(page)

		assert '#buy' in state.selector_map.values()


class TestSelectors:
	async def test_every_selector_resolves_to_exactly_one_element(self, http_server, page):
		await page.goto(serve(http_server, '/form', FORM_PAGE))

		state = await get_llm_tree(page)

		assert state.selector_map
		for index, selector in state.selector_map.items():
			assert await page.locator(selector).count() == 1, f'[{index}] {selector}'

	async def test_form_page_output(self, http_server, page):
		await page.goto(serve(http_server, '/form-output', FORM_PAGE))

		state = await get_llm_tree(page)
		selectors = set(state.selector_map.values())

		assert 'Hidden' not in state.tree
		assert 'input[name="email"]' in selectors
		assert 'input[name="plan"][value="pro"]' in selectors
		assert '#app > ul > li:nth-of-type(3) > a' in selectors
		assert '{Dropdown Toggle (combobox): B Options: [A, B]}' in state.tree
		assert '|SCROLL|' in state.tree and 'pages below' in state.tree
		assert '<span>' not in state.tree

	async def test_idempotent_on_static_page(self, http_server, page):
		await page.goto(serve(http_server, '/form-idempotent', FORM_PAGE))

		first = await get_llm_tree(page)
		second = await get_llm_tree(page, GetTreeOptions(previous_state=first.known_node_ids()))

		assert first.tree == second.tree
		assert first.selector_map == second.selector_map


class TestShadowAndFrames:
	async def test_open_shadow_root(self, http_server, page):
		await page.goto(serve(http_server, '/shadow', SHADOW_PAGE))

		state = await get_llm_tree(page)

		assert '|SHADOW(open)|' in state.tree
		assert 'Inside shadow' in state.tree
		assert await page.locator(state.selector_map[1]).count() == 1

	async def test_shadow_dom_can_be_disabled(self, http_server, page):
		await page.goto(serve(http_server, '/shadow-off', SHADOW_PAGE))

		state = await get_llm_tree(page, GetTreeOptions(include_shadow_dom=False))

		assert '|SHADOW' not in state.tree

	async def test_same_origin_frame(self, http_server, page):
		serve(http_server, '/frame', FRAME_PAGE)
		await page.goto(serve(http_server, '/frame-host', FRAME_HOST_PAGE))
		await page.wait_for_load_state('load')

		tree = await extract_dom_tree(page)
		state = await get_llm_tree(page)

		frame = next(child for child in tree.children if child.is_frame)
		assert frame.content_document is not None
		assert '|IFRAME|' in state.tree
		assert 'Inside frame' in state.tree
		assert '#inner' in state.selector_map.values()
