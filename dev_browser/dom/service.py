import asyncio
import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any
from urllib.parse import urlparse

from dev_browser.config import CONFIG
from dev_browser.dom.extraction_script import EXTRACT_DOM_SCRIPT
from dev_browser.dom.serializer.paint_order import apply_filters
from dev_browser.dom.serializer.serializer import DOMTreeSerializer
from dev_browser.dom.views import (
	BoundingRect,
	ComputedStyles,
	DOMNode,
	GetTreeOptions,
	NodeType,
	SerializedDOMState,
)
from dev_browser.dom.visibility import filter_visible_nodes
from dev_browser.utils import time_execution_async, time_execution_sync

if TYPE_CHECKING:
	from playwright.async_api import Frame, Page

logger = logging.getLogger(__name__)

_BLANK_URL_PREFIXES = ('about:', 'data:', 'javascript:')

_STYLE_KEYS = {
	'display': 'display',
	'visibility': 'visibility',
	'opacity': 'opacity',
	'cursor': 'cursor',
	'backgroundColor': 'background_color',
	'overflowX': 'overflow_x',
	'overflowY': 'overflow_y',
	'pointerEvents': 'pointer_events',
}


def _is_blank_url(url: str | None) -> bool:
	if not url:
		return True
	return url.strip().lower().startswith(_BLANK_URL_PREFIXES)


def _origin(url: str) -> tuple[str, str]:
	parsed = urlparse(url)
	return parsed.scheme.lower(), parsed.netloc.lower()


def _is_same_origin(url: str, other_url: str) -> bool:
	return _origin(url) == _origin(other_url)


def _collect_frame_dicts(raw: dict[str, Any]) -> list[dict[str, Any]]:
	"""Frame element dicts of one document, in document order (shadow roots included)."""
	frames = []
	# (entry, expanded): a frame is recorded after its own subtree
	stack: list[tuple[dict[str, Any], bool]] = [(raw, False)]
	while stack:
		entry, expanded = stack.pop()
		if expanded:
			if entry.get('isFrame'):
				frames.append(entry)
			continue
		stack.append((entry, True))
		nested = [*(entry.get('shadowRoots') or []), *(entry.get('children') or [])]
		stack.extend((node, False) for node in reversed(nested) if isinstance(node, dict))
	return frames


def _match_frame(frame_url: str, candidates: list['Frame']) -> 'Frame | None':
	"""Exact URL match first, then a frame whose URL contains the recorded one."""
	for frame in candidates:
		if frame.url == frame_url:
			return frame
	for frame in candidates:
		if frame_url in frame.url:
			return frame
	return None


def _as_float(value: Any, default: float = 0.0) -> float:
	if isinstance(value, bool):
		return default
	if isinstance(value, (int, float)):
		return float(value)
	return default


def _as_int(value: Any, default: int) -> int:
	if isinstance(value, bool) or not isinstance(value, (int, float)):
		return default
	return int(value)


@dataclass(slots=True)
class _ExtractionContext:
	"""Per-call id counter; node ids are unique within one extraction."""

	next_node_id: int = 0

	def allocate(self) -> int:
		node_id = self.next_node_id
		self.next_node_id += 1
		return node_id


def _construct_bounding_rect(raw: Any) -> BoundingRect:
	if not isinstance(raw, dict):
		return BoundingRect()
	return BoundingRect(
		x=_as_float(raw.get('x')),
		y=_as_float(raw.get('y')),
		width=_as_float(raw.get('width')),
		height=_as_float(raw.get('height')),
	)


def _construct_computed_styles(raw: Any) -> ComputedStyles:
	if not isinstance(raw, dict):
		return ComputedStyles()
	values = {field_name: str(raw[key]) for key, field_name in _STYLE_KEYS.items() if raw.get(key) is not None}
	return ComputedStyles(**values)


def _raw_node_type(raw: Any) -> NodeType | None:
	"""Node type of a walker entry; None for malformed entries, which are skipped with their subtree."""
	if not isinstance(raw, dict):
		return None
	try:
		node_type = NodeType(raw.get('nodeType', NodeType.ELEMENT_NODE))
	except ValueError:
		return None

	tag_name = raw.get('tagName')
	if not isinstance(tag_name, str) or not tag_name:
		return None
	return node_type


def _raw_child_entries(raw: dict[str, Any]) -> Iterator[tuple[str, Any]]:
	for shadow in raw.get('shadowRoots') or []:
		yield 'shadow_roots', shadow
	for child in raw.get('children') or []:
		yield 'children', child
	if raw.get('contentDocument'):
		yield 'content_document', raw['contentDocument']


@dataclass(slots=True)
class _PendingNode:
	"""A raw node whose id is allocated but whose descendants are still being built."""

	raw: dict[str, Any]
	node_type: NodeType
	node_id: int
	entries: Iterator[tuple[str, Any]]
	parent_built: dict[str, list[DOMNode]]
	slot: str
	built: dict[str, list[DOMNode]] = field(
		default_factory=lambda: {'shadow_roots': [], 'children': [], 'content_document': []}
	)


def _finish_dom_node(pending: _PendingNode) -> DOMNode:
	raw = pending.raw
	attributes = raw.get('attributes')
	attributes = {str(k): str(v) for k, v in attributes.items()} if isinstance(attributes, dict) else {}

	viewport_width = raw.get('viewportWidth')
	viewport_height = raw.get('viewportHeight')
	frame_url = raw.get('frameUrl')
	content_documents = pending.built['content_document']

	return DOMNode(
		node_id=pending.node_id,
		node_type=pending.node_type,
		tag_name=raw['tagName'].lower(),
		attributes=attributes,
		text=raw.get('textContent') if isinstance(raw.get('textContent'), str) else '',
		bounding_rect=_construct_bounding_rect(raw.get('boundingRect')),
		computed_styles=_construct_computed_styles(raw.get('computedStyles')),
		is_scrollable=bool(raw.get('isScrollable', False)),
		scroll_top=_as_float(raw.get('scrollTop')),
		scroll_left=_as_float(raw.get('scrollLeft')),
		scroll_height=_as_float(raw.get('scrollHeight')),
		scroll_width=_as_float(raw.get('scrollWidth')),
		client_height=_as_float(raw.get('clientHeight')),
		client_width=_as_float(raw.get('clientWidth')),
		paint_order=_as_int(raw.get('paintOrder'), 0),
		children=tuple(pending.built['children']),
		shadow_roots=tuple(pending.built['shadow_roots']),
		shadow_mode=raw.get('shadowMode') if pending.node_type == NodeType.DOCUMENT_FRAGMENT_NODE else None,
		content_document=content_documents[0] if content_documents else None,
		is_frame=bool(raw.get('isFrame', False)),
		frame_url=frame_url if isinstance(frame_url, str) else None,
		nth_of_type=_as_int(raw.get('nthOfType'), 1),
		same_type_count=_as_int(raw.get('sameTypeCount'), 1),
		viewport_width=_as_float(viewport_width) if viewport_width is not None else None,
		viewport_height=_as_float(viewport_height) if viewport_height is not None else None,
	)


def _construct_dom_node(raw: Any, context: _ExtractionContext) -> DOMNode | None:
	"""Build a DOMNode tree from the walker's raw dict; malformed entries come back as None.

	Ids are allocated in pre-order (node, shadow roots, children, frame document). Nodes are
	finished bottom-up from an explicit stack, so page depth is not bound by the recursion limit.
	"""
	node_type = _raw_node_type(raw)
	if node_type is None:
		return None

	result: dict[str, list[DOMNode]] = {'children': []}
	stack = [_PendingNode(raw, node_type, context.allocate(), _raw_child_entries(raw), result, 'children')]
	while stack:
		pending = stack[-1]
		entry = next(pending.entries, None)
		if entry is not None:
			slot, child_raw = entry
			child_type = _raw_node_type(child_raw)
			if child_type is not None:
				stack.append(
					_PendingNode(child_raw, child_type, context.allocate(), _raw_child_entries(child_raw), pending.built, slot)
				)
			continue

		stack.pop()
		pending.parent_built[pending.slot].append(_finish_dom_node(pending))

	return result['children'][0]


class DomService:
	"""
	Extracts the DOM of a Playwright page (same-origin frames included) and
	turns it into the indexed text representation.
	"""

	def __init__(self, page: 'Page', frame_timeout: float | None = None):
		self.page = page
		self.frame_timeout = frame_timeout if frame_timeout is not None else CONFIG.DEV_BROWSER_FRAME_TIMEOUT

	async def _evaluate(self, context: 'Page | Frame', include_shadow_dom: bool) -> dict[str, Any] | None:
		raw = await context.evaluate(EXTRACT_DOM_SCRIPT, {'includeShadowDOM': include_shadow_dom})
		return raw if isinstance(raw, dict) else None

	async def _extract_frame(
		self, frame_dict: dict[str, Any], frame: 'Frame', include_shadow_dom: bool, frame_timeout: float
	) -> None:
		try:
			content = await asyncio.wait_for(self._evaluate(frame, include_shadow_dom), timeout=frame_timeout)
		except asyncio.TimeoutError:
			logger.debug(f'Frame extraction timed out after {frame_timeout}s: {frame.url}')
			return
		except Exception as e:
			# detached or still navigating
			logger.debug(f'Frame extraction failed for {frame.url}: {type(e).__name__}: {e}')
			return

		if content is None:
			return
		frame_dict['contentDocument'] = content
		await self._enrich_frames(content, frame, include_shadow_dom, frame_timeout)

	async def _enrich_frames(
		self, raw: dict[str, Any], context: 'Frame', include_shadow_dom: bool, frame_timeout: float
	) -> None:
		"""Attach content documents to the frame elements of one raw document, concurrently.

		``context`` is the frame the document was read from; the page's main frame for the top document.
		"""
		frame_dicts = _collect_frame_dicts(raw)
		if not frame_dicts:
			return

		context_url = context.url
		candidates = list(context.child_frames)

		tasks = []
		for frame_dict in frame_dicts:
			frame_url = frame_dict.get('frameUrl')
			if _is_blank_url(frame_url):
				continue
			if not _is_same_origin(frame_url, context_url):
				logger.debug(f'Skipping cross-origin frame: {frame_url}')
				continue

			frame = _match_frame(frame_url, candidates)
			if frame is None:
				logger.debug(f'No live frame found for {frame_url}')
				continue
			# one live frame serves one element
			candidates.remove(frame)
			tasks.append(self._extract_frame(frame_dict, frame, include_shadow_dom, frame_timeout))

		if tasks:
			await asyncio.gather(*tasks)

	@time_execution_async('--extract_dom_tree')
	async def extract_dom_tree(
		self, include_iframes: bool = True, include_shadow_dom: bool = True, frame_timeout: float | None = None
	) -> DOMNode | None:
		"""Snapshot the page into a DOMNode tree rooted at <body>, or None if no root is reachable.

		``frame_timeout`` overrides the service default for this call only.
		"""
		try:
			raw = await self._evaluate(self.page, include_shadow_dom)
		except Exception as e:
			logger.warning(f'⚠️ Could not extract DOM from {self.page.url}: {type(e).__name__}: {e}')
			return None

		if raw is None:
			logger.debug('No document root available, page may be navigating')
			return None

		if include_iframes:
			timeout = frame_timeout if frame_timeout is not None else self.frame_timeout
			await self._enrich_frames(raw, self.page.main_frame, include_shadow_dom, timeout)

		return _construct_dom_node(raw, _ExtractionContext())

	@time_execution_async('--get_serialized_dom_tree')
	async def get_serialized_dom_tree(self, options: GetTreeOptions | None = None) -> SerializedDOMState:
		options = options or GetTreeOptions()
		tree = await self.extract_dom_tree(
			include_iframes=options.include_iframes,
			include_shadow_dom=options.include_shadow_dom,
			frame_timeout=options.frame_timeout,
		)
		return serialize_dom_tree(process_tree(tree, options), options)


async def extract_dom_tree(
	page: 'Page',
	include_iframes: bool = True,
	include_shadow_dom: bool = True,
	frame_timeout: float | None = None,
) -> DOMNode | None:
	return await DomService(page, frame_timeout=frame_timeout).extract_dom_tree(
		include_iframes=include_iframes, include_shadow_dom=include_shadow_dom
	)


@time_execution_sync('--process_tree')
def process_tree(tree: DOMNode | None, options: GetTreeOptions | None = None) -> DOMNode | None:
	"""Visibility pruning, then paint-order and bbox filtering."""
	options = options or GetTreeOptions()
	visible = filter_visible_nodes(tree)
	if visible is None:
		return None
	return apply_filters(
		visible,
		enable_paint_order=options.enable_paint_order_filtering,
		enable_bbox=options.enable_bbox_filtering,
	)


def serialize_dom_tree(tree: DOMNode | None, options: GetTreeOptions | None = None) -> SerializedDOMState:
	return DOMTreeSerializer(tree, options).serialize_accessible_elements()


async def get_llm_tree(page: 'Page', options: GetTreeOptions | None = None) -> SerializedDOMState:
	"""Extract, filter and serialize the page in one call."""
	return await DomService(page).get_serialized_dom_tree(options)
