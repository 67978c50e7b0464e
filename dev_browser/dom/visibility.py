# @file purpose: CSS visibility checks and pruning of hidden subtrees

from collections.abc import Iterator

from dev_browser.dom.utils import ChildEntry, rebuild_tree, walk_tree
from dev_browser.dom.views import BoundingRect, DOMNode


def _parse_opacity(value: str) -> float:
	try:
		return float(value)
	except (TypeError, ValueError):
		return 1.0


def is_visible(node: DOMNode) -> bool:
	"""Check if a node is visually present according to its own computed styles.

	Text nodes and shadow roots are always visible; their ancestors decide.
	"""
	if node.is_text or node.is_shadow_root:
		return True

	styles = node.computed_styles
	if styles.display == 'none':
		return False
	if styles.visibility == 'hidden':
		return False

	if _parse_opacity(styles.opacity) <= 0:
		# styled upload buttons hide the native file input underneath a trigger
		if node.tag_name == 'input' and node.input_type == 'file':
			return True
		return False

	return True


def is_in_viewport(
	rect: BoundingRect,
	viewport_width: float,
	viewport_height: float,
	scroll_x: float = 0,
	scroll_y: float = 0,
) -> bool:
	"""Check if a document-space rect touches the viewport (edges inclusive)."""
	return not (
		rect.right < scroll_x
		or rect.x > scroll_x + viewport_width
		or rect.bottom < scroll_y
		or rect.y > scroll_y + viewport_height
	)


def _visible_children(node: DOMNode, _context: None) -> Iterator[ChildEntry]:
	for shadow in node.shadow_roots:
		if is_visible(shadow):
			yield 'shadow_roots', shadow, None
	for child in node.children:
		if is_visible(child):
			yield 'children', child, None
	if node.content_document is not None and is_visible(node.content_document):
		yield 'content_document', node.content_document, None


def filter_visible_nodes(node: DOMNode | None) -> DOMNode | None:
	"""Return a copy of the tree without hidden nodes; a hidden node takes its whole subtree with it."""
	if node is None or not is_visible(node):
		return None
	return rebuild_tree(node, _visible_children)


def mark_visibility(node: DOMNode, parent_visible: bool = True) -> dict[int, bool]:
	"""Map every node id to its effective visibility (own styles and all ancestors).

	A frame's content document starts a fresh visibility chain.
	"""
	result: dict[int, bool] = {}
	stack = [(node, parent_visible)]
	while stack:
		current, inherited = stack.pop()
		visible = inherited and is_visible(current)
		result[current.node_id] = visible
		stack.extend((shadow, visible) for shadow in current.shadow_roots)
		stack.extend((child, visible) for child in current.children)
		if current.content_document is not None:
			stack.append((current.content_document, True))
	return result


def has_meaningful_content(node: DOMNode) -> bool:
	"""Whether the node or anything below it (shadow roots included) carries text."""
	return any(current.text.strip() for current in walk_tree(node, include_frames=False))
