# @file purpose: Paint-order occlusion and bounding-box propagation filtering
"""
Two tree-to-tree passes run before indexing:

- paint-order occlusion marks actionable nodes that sit completely under a
  later-painted, opaque box (``ignored_by_paint_order``). Paint order is the
  extraction traversal counter, not real stacking-context z-order.
- bounding-box propagation removes the structural children of button/link-like
  containers when they lie entirely inside the container's box.
"""

import re
from collections.abc import Iterator

from dev_browser.dom.serializer.clickable_elements import ClickableElementDetector
from dev_browser.dom.utils import ChildEntry, rebuild_tree, walk_tree
from dev_browser.dom.views import CONTAINMENT_THRESHOLD, OPAQUE_ALPHA_THRESHOLD, BoundingRect, DOMNode

_RGB_FUNCTION_RE = re.compile(r'^rgba?\((?P<args>[^)]*)\)$')


def get_containment_percentage(inner: BoundingRect, outer: BoundingRect) -> float:
	"""Share of ``inner``'s area that lies inside ``outer``, in [0, 1]. Zero-area inner boxes are 0."""
	inner_area = inner.area
	if inner_area <= 0:
		return 0.0

	left = max(inner.x, outer.x)
	right = min(inner.right, outer.right)
	top = max(inner.y, outer.y)
	bottom = min(inner.bottom, outer.bottom)

	if right <= left or bottom <= top:
		return 0.0

	return min(1.0, ((right - left) * (bottom - top)) / inner_area)


def is_fully_contained(inner: BoundingRect, outer: BoundingRect) -> bool:
	# 99% so sub-pixel rounding does not break containment
	return get_containment_percentage(inner, outer) >= CONTAINMENT_THRESHOLD


def _parse_alpha(background_color: str) -> float | None:
	match = _RGB_FUNCTION_RE.match(background_color.strip())
	if not match:
		return None
	parts = [part for part in re.split(r'[\s,/]+', match.group('args').strip()) if part]
	if len(parts) < 4:
		return 1.0
	alpha = parts[3]
	try:
		if alpha.endswith('%'):
			return float(alpha[:-1]) / 100
		return float(alpha)
	except ValueError:
		return None


def is_opaque_element(node: DOMNode) -> bool:
	"""Whether the node paints a (near) solid background. Missing colors count as transparent."""
	background_color = node.computed_styles.background_color.strip().lower()
	if not background_color or background_color in {'transparent', 'rgba(0, 0, 0, 0)', 'none'}:
		return False

	alpha = _parse_alpha(background_color)
	if alpha is not None and alpha < OPAQUE_ALPHA_THRESHOLD:
		return False
	return True


def flatten_tree(node: DOMNode, include_frames: bool = True) -> list[DOMNode]:
	"""All nodes of the tree in traversal order: node, shadow roots, children, then frame document."""
	return list(walk_tree(node, include_frames))


def _has_area(node: DOMNode) -> bool:
	return node.bounding_rect.width > 0 and node.bounding_rect.height > 0


def is_occluded_by_paint_order(node: DOMNode, all_nodes: list[DOMNode]) -> bool:
	"""Check if a later-painted opaque node covers this node completely.

	``all_nodes`` must come from the same document. The node's own descendants
	never count as covering it.
	"""
	if not _has_area(node):
		return False

	own_subtree = {n.node_id for n in flatten_tree(node, include_frames=False)}
	for overlay in all_nodes:
		if overlay.paint_order <= node.paint_order or overlay.node_id in own_subtree:
			continue
		if not _has_area(overlay):
			continue
		if is_fully_contained(node.bounding_rect, overlay.bounding_rect) and is_opaque_element(overlay):
			return True
	return False


class PaintOrderRemover:
	"""Marks actionable nodes that are hidden under later-painted opaque boxes."""

	def __init__(self, root: DOMNode):
		self.root = root

	def calculate_paint_order(self) -> DOMNode:
		occluded_ids: set[int] = set()
		for document_root in self._document_roots(self.root):
			occluded_ids |= self._occluded_in_document(document_root)
		if not occluded_ids:
			return self.root
		return self._mark(self.root, occluded_ids)

	@staticmethod
	def _document_roots(root: DOMNode) -> list[DOMNode]:
		return [root, *(node.content_document for node in walk_tree(root) if node.content_document is not None)]

	@staticmethod
	def _occluded_in_document(document_root: DOMNode) -> set[int]:
		nodes = flatten_tree(document_root, include_frames=False)
		# only opaque boxes with area can cover anything
		overlays = [n for n in nodes if n.is_element and _has_area(n) and is_opaque_element(n)]
		if not overlays:
			return set()

		occluded: set[int] = set()
		for node in nodes:
			if not ClickableElementDetector.is_actionable(node):
				continue
			if is_occluded_by_paint_order(node, overlays):
				occluded.add(node.node_id)
		return occluded

	@staticmethod
	def _mark(root: DOMNode, occluded_ids: set[int]) -> DOMNode:
		def keep_all(node: DOMNode, _context: None) -> Iterator[ChildEntry]:
			for shadow in node.shadow_roots:
				yield 'shadow_roots', shadow, None
			for child in node.children:
				yield 'children', child, None
			if node.content_document is not None:
				yield 'content_document', node.content_document, None

		return rebuild_tree(
			root,
			keep_all,
			update=lambda node: {'ignored_by_paint_order': node.ignored_by_paint_order or node.node_id in occluded_ids},
		)


def filter_by_paint_order(root: DOMNode) -> DOMNode:
	return PaintOrderRemover(root).calculate_paint_order()


def should_exclude_from_propagating_parent(child: DOMNode, parent: DOMNode) -> bool:
	"""True when ``child`` collapses into ``parent``: parent propagates, child sits inside, child has no own meaning."""
	if not ClickableElementDetector.is_propagating(parent):
		return False
	if not is_fully_contained(child.bounding_rect, parent.bounding_rect):
		return False
	return not ClickableElementDetector.should_keep_child_in_propagating_parent(child)


def _propagation_entries(node: DOMNode, propagating_ancestor: DOMNode | None) -> Iterator[tuple[ChildEntry, bool]]:
	"""Child entries paired with whether the child collapses into the nearest propagating ancestor."""
	ancestor = node if ClickableElementDetector.is_propagating(node) else propagating_ancestor
	for shadow in node.shadow_roots:
		yield ('shadow_roots', shadow, ancestor), False
	for child in node.children:
		excluded = ancestor is not None and should_exclude_from_propagating_parent(child, ancestor)
		yield ('children', child, ancestor), excluded
	if node.content_document is not None:
		yield ('content_document', node.content_document, None), False


def filter_by_bbox_propagation(root: DOMNode) -> DOMNode:
	"""Drop children that lie inside the nearest propagating ancestor's box.

	A frame's content document starts with no propagating ancestor.
	"""

	def kept(node: DOMNode, propagating_ancestor: DOMNode | None) -> Iterator[ChildEntry]:
		return (entry for entry, excluded in _propagation_entries(node, propagating_ancestor) if not excluded)

	return rebuild_tree(root, kept)


def get_excluded_node_ids(root: DOMNode) -> set[int]:
	"""Ids of nodes the two passes would hide, for diagnostics."""
	excluded: set[int] = set()

	for document_root in PaintOrderRemover._document_roots(root):
		excluded |= PaintOrderRemover._occluded_in_document(document_root)

	stack: list[tuple[DOMNode, DOMNode | None]] = [(root, None)]
	while stack:
		node, propagating_ancestor = stack.pop()
		for (_, child, child_ancestor), collapses in _propagation_entries(node, propagating_ancestor):
			if collapses:
				excluded.add(child.node_id)
			stack.append((child, child_ancestor))

	return excluded


def apply_filters(root: DOMNode, enable_paint_order: bool = True, enable_bbox: bool = True) -> DOMNode:
	filtered = root
	if enable_paint_order:
		filtered = filter_by_paint_order(filtered)
	if enable_bbox:
		filtered = filter_by_bbox_propagation(filtered)
	return filtered
