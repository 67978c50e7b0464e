"""
Tests for paint-order occlusion and bounding-box propagation.

Paint order is the extraction traversal counter, an approximation of real
CSS stacking order. Tests here pin that approximation down; they do not
model z-index or stacking contexts.
"""

import sys

from dev_browser.dom.serializer.paint_order import (
	apply_filters,
	filter_by_bbox_propagation,
	filter_by_paint_order,
	flatten_tree,
	get_containment_percentage,
	get_excluded_node_ids,
	is_fully_contained,
	is_occluded_by_paint_order,
	is_opaque_element,
	should_exclude_from_propagating_parent,
)
from dev_browser.dom.views import BoundingRect, ComputedStyles, DOMNode, NodeType

OPAQUE = 'rgb(255, 255, 255)'
TRANSPARENT = 'rgba(0, 0, 0, 0)'


def create_node(
	tag_name: str,
	node_id: int,
	rect: tuple[float, float, float, float] = (0, 0, 100, 40),
	paint_order: int = 0,
	attributes: dict | None = None,
	children: tuple = (),
	background_color: str = TRANSPARENT,
	**kwargs,
) -> DOMNode:
	return DOMNode(
		node_id=node_id,
		node_type=NodeType.ELEMENT_NODE,
		tag_name=tag_name,
		attributes=attributes or {},
		children=children,
		bounding_rect=BoundingRect(*rect),
		computed_styles=ComputedStyles(display='block', background_color=background_color),
		paint_order=paint_order,
		**kwargs,
	)


def find(root: DOMNode, node_id: int) -> DOMNode | None:
	return next((node for node in flatten_tree(root) if node.node_id == node_id), None)


def overlay_page(overlay_background: str, overlay_paint_order: int = 2) -> DOMNode:
	button = create_node('button', 2, rect=(10, 10, 100, 40), paint_order=1)
	overlay = create_node('div', 3, rect=(0, 0, 400, 300), paint_order=overlay_paint_order, background_color=overlay_background)
	return create_node('body', 1, rect=(0, 0, 800, 600), children=(button, overlay))


class TestContainment:
	def test_fully_inside(self):
		assert get_containment_percentage(BoundingRect(10, 10, 10, 10), BoundingRect(0, 0, 100, 100)) == 1.0

	def test_half_inside(self):
		assert get_containment_percentage(BoundingRect(50, 0, 100, 100), BoundingRect(0, 0, 100, 100)) == 0.5

	def test_disjoint(self):
		assert get_containment_percentage(BoundingRect(200, 200, 10, 10), BoundingRect(0, 0, 100, 100)) == 0.0

	def test_zero_area_inner_is_never_contained(self):
		assert get_containment_percentage(BoundingRect(10, 10, 0, 10), BoundingRect(0, 0, 100, 100)) == 0.0
		assert not is_fully_contained(BoundingRect(10, 10, 0, 0), BoundingRect(0, 0, 100, 100))

	def test_value_stays_in_unit_range(self):
		pairs = [
			(BoundingRect(0, 0, 1, 1), BoundingRect(0, 0, 1000, 1000)),
			(BoundingRect(-50, -50, 100, 100), BoundingRect(0, 0, 10, 10)),
			(BoundingRect(0, 0, 100, 100), BoundingRect(0, 0, 100, 100)),
		]
		for inner, outer in pairs:
			assert 0.0 <= get_containment_percentage(inner, outer) <= 1.0

	def test_subpixel_overhang_still_counts_as_contained(self):
		assert is_fully_contained(BoundingRect(0, 0, 100, 100.5), BoundingRect(0, 0, 100, 100))


class TestOpacity:
	def test_solid_colors_are_opaque(self):
		assert is_opaque_element(create_node('div', 1, background_color=OPAQUE))
		assert is_opaque_element(create_node('div', 1, background_color='rgba(255, 255, 255, 0.95)'))

	def test_transparent_colors(self):
		for color in [TRANSPARENT, 'transparent', '', 'rgba(255, 255, 255, 0.5)', 'rgb(0 0 0 / 50%)']:
			assert not is_opaque_element(create_node('div', 1, background_color=color)), color


class TestPaintOrderOcclusion:
	def test_opaque_overlay_hides_button(self):
		result = filter_by_paint_order(overlay_page(OPAQUE))
		assert find(result, 2).ignored_by_paint_order

	def test_transparent_overlay_leaves_button(self):
		result = filter_by_paint_order(overlay_page(TRANSPARENT))
		assert not find(result, 2).ignored_by_paint_order

	def test_overlay_painted_earlier_does_not_hide(self):
		page = overlay_page(OPAQUE, overlay_paint_order=0)
		assert not find(filter_by_paint_order(page), 2).ignored_by_paint_order

	def test_zero_area_overlay_does_not_hide(self):
		button = create_node('button', 2, rect=(10, 10, 100, 40), paint_order=1)
		overlay = create_node('div', 3, rect=(0, 0, 0, 0), paint_order=2, background_color=OPAQUE)
		root = create_node('body', 1, rect=(0, 0, 800, 600), children=(button, overlay))

		assert not is_occluded_by_paint_order(button, flatten_tree(root))

	def test_own_opaque_child_does_not_hide_parent(self):
		inner = create_node('span', 3, rect=(10, 10, 100, 40), paint_order=2, background_color=OPAQUE)
		button = create_node('button', 2, rect=(10, 10, 100, 40), paint_order=1, children=(inner,))
		root = create_node('body', 1, rect=(0, 0, 800, 600), children=(button,))

		assert not find(filter_by_paint_order(root), 2).ignored_by_paint_order

	def test_partial_cover_does_not_hide(self):
		button = create_node('button', 2, rect=(10, 10, 100, 40), paint_order=1)
		banner = create_node('div', 3, rect=(0, 0, 800, 30), paint_order=2, background_color=OPAQUE)
		root = create_node('body', 1, rect=(0, 0, 800, 600), children=(button, banner))

		assert not find(filter_by_paint_order(root), 2).ignored_by_paint_order

	def test_occlusion_is_per_document(self):
		"""A frame's document numbers its own paint order; main-page overlays never cover it."""
		frame_button = create_node('button', 4, rect=(10, 10, 100, 40), paint_order=1)
		frame_body = create_node('body', 3, rect=(0, 0, 400, 300), paint_order=0, children=(frame_button,))
		frame = create_node('iframe', 2, rect=(0, 0, 400, 300), paint_order=1, is_frame=True, content_document=frame_body)
		overlay = create_node('div', 5, rect=(0, 0, 800, 600), paint_order=2, background_color=OPAQUE)
		root = create_node('body', 1, rect=(0, 0, 800, 600), children=(frame, overlay))

		result = filter_by_paint_order(root)

		assert not find(result, 4).ignored_by_paint_order
		assert find(result, 2).ignored_by_paint_order

	def test_input_tree_is_not_mutated(self):
		page = overlay_page(OPAQUE)
		filter_by_paint_order(page)
		assert not find(page, 2).ignored_by_paint_order


class TestBoundingBoxPropagation:
	def test_decorative_span_collapses_into_button(self):
		label = create_node('span', 3, rect=(20, 15, 40, 20))
		button = create_node('button', 2, rect=(10, 10, 100, 40), children=(label,))
		root = create_node('body', 1, rect=(0, 0, 800, 600), children=(button,))

		result = filter_by_bbox_propagation(root)

		assert find(result, 3) is None
		assert find(result, 2) is not None

	def test_checkbox_inside_button_is_kept(self):
		checkbox = create_node('input', 3, rect=(20, 15, 16, 16), attributes={'type': 'checkbox'})
		button = create_node('button', 2, rect=(10, 10, 100, 40), children=(checkbox,))
		root = create_node('body', 1, rect=(0, 0, 800, 600), children=(button,))

		assert find(filter_by_bbox_propagation(root), 3) is not None

	def test_child_sticking_out_is_kept(self):
		tooltip = create_node('span', 3, rect=(10, 60, 100, 40))
		button = create_node('button', 2, rect=(10, 10, 100, 40), children=(tooltip,))
		root = create_node('body', 1, rect=(0, 0, 800, 600), children=(button,))

		assert find(filter_by_bbox_propagation(root), 3) is not None

	def test_propagation_reaches_grandchildren(self):
		icon = create_node('svg', 4, rect=(20, 15, 16, 16))
		labelled = create_node('span', 3, rect=(15, 12, 80, 30), attributes={'aria-label': 'Settings'}, children=(icon,))
		link = create_node('a', 2, rect=(10, 10, 100, 40), children=(labelled,))
		root = create_node('body', 1, rect=(0, 0, 800, 600), children=(link,))

		result = filter_by_bbox_propagation(root)

		assert find(result, 3) is not None
		assert find(result, 4) is None

	def test_frame_document_starts_without_propagating_ancestor(self):
		frame_span = create_node('span', 5, rect=(0, 0, 10, 10))
		frame_body = create_node('body', 4, rect=(0, 0, 100, 40), children=(frame_span,))
		frame = create_node(
			'iframe',
			3,
			rect=(10, 10, 100, 40),
			attributes={'aria-label': 'Embedded'},
			is_frame=True,
			content_document=frame_body,
		)
		button = create_node('button', 2, rect=(0, 0, 200, 100), children=(frame,))
		root = create_node('body', 1, rect=(0, 0, 800, 600), children=(button,))

		result = filter_by_bbox_propagation(root)

		assert find(result, 3) is not None
		assert find(result, 5) is not None

	def test_unlabelled_frame_collapses_into_button(self):
		frame = create_node('iframe', 3, rect=(10, 10, 100, 40), is_frame=True)
		button = create_node('button', 2, rect=(0, 0, 200, 100), children=(frame,))

		assert should_exclude_from_propagating_parent(frame, button)


class TestCombinedFilters:
	def test_excluded_ids_cover_both_passes(self):
		label = create_node('span', 5, rect=(520, 15, 40, 20))
		other_button = create_node('button', 4, rect=(510, 10, 100, 40), paint_order=3, children=(label,))
		root = overlay_page(OPAQUE)
		root = create_node('body', 1, rect=(0, 0, 800, 600), children=(*root.children, other_button))

		assert get_excluded_node_ids(root) == {2, 5}

	def test_disabled_filters_return_the_same_tree(self):
		root = overlay_page(OPAQUE)
		assert apply_filters(root, enable_paint_order=False, enable_bbox=False) is root

	def test_apply_filters_runs_both(self):
		label = create_node('span', 5, rect=(520, 15, 40, 20))
		other_button = create_node('button', 4, rect=(510, 10, 100, 40), paint_order=3, children=(label,))
		base = overlay_page(OPAQUE)
		root = create_node('body', 1, rect=(0, 0, 800, 600), children=(*base.children, other_button))

		result = apply_filters(root)

		assert find(result, 2).ignored_by_paint_order
		assert find(result, 5) is None
		assert not find(result, 4).ignored_by_paint_order


class TestFlattenTree:
	def test_order_is_node_shadow_children_frame(self):
		shadow = DOMNode(node_id=3, node_type=NodeType.DOCUMENT_FRAGMENT_NODE, tag_name='#shadow-root')
		frame_body = create_node('body', 5, paint_order=0)
		frame = create_node('iframe', 4, is_frame=True, content_document=frame_body)
		host = create_node('div', 2, shadow_roots=(shadow,), children=(frame,))
		root = create_node('body', 1, children=(host,))

		assert [node.node_id for node in flatten_tree(root)] == [1, 2, 3, 4, 5]
		assert [node.node_id for node in flatten_tree(root, include_frames=False)] == [1, 2, 3, 4]


class TestDeepTrees:
	def test_filters_handle_nesting_beyond_recursion_limit(self):
		depth = sys.getrecursionlimit() + 500
		button = create_node('button', depth + 1, rect=(10, 10, 100, 40), paint_order=depth + 1)
		overlay = create_node('div', depth + 2, rect=(0, 0, 400, 300), paint_order=depth + 2, background_color=OPAQUE)
		node = create_node('div', depth, paint_order=depth, children=(button, overlay))
		for node_id in range(depth - 1, 0, -1):
			node = create_node('div', node_id, paint_order=node_id, children=(node,))

		result = apply_filters(node)

		assert find(result, depth + 1).ignored_by_paint_order
		assert not find(result, depth).ignored_by_paint_order
		assert get_excluded_node_ids(node) == {depth + 1}
		assert len(flatten_tree(result)) == depth + 2
