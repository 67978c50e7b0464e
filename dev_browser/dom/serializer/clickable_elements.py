from dev_browser.dom.utils import walk_tree
from dev_browser.dom.views import (
	INTERACTIVE_EVENT_HANDLERS,
	INTERACTIVE_ROLES,
	INTERACTIVE_TAGS,
	MIN_INTERACTIVE_IFRAME_SIZE,
	PROPAGATING_ROLE_HOST_TAGS,
	PROPAGATING_ROLES,
	PROPAGATING_TAGS,
	DOMNode,
)

# Icon-only search triggers often carry no semantic markup at all
SEARCH_ICON_TOKENS = ('search', 'magnify', 'glass', 'lookup', 'find', 'query')

FORM_CONTROL_TAGS = frozenset({'input', 'select', 'textarea', 'label'})


def _parse_tabindex(value: str | None) -> int | None:
	if value is None:
		return None
	try:
		return int(value.strip())
	except ValueError:
		return None


class ClickableElementDetector:
	@staticmethod
	def _has_interactive_tag(node: DOMNode) -> bool:
		if node.tag_name == 'input' and node.input_type == 'hidden':
			return False
		return node.tag_name in INTERACTIVE_TAGS

	@staticmethod
	def _has_interactive_role(node: DOMNode) -> bool:
		role = node.role
		return role is not None and role in INTERACTIVE_ROLES

	@staticmethod
	def _has_event_handlers(node: DOMNode) -> bool:
		return any(handler in node.attributes for handler in INTERACTIVE_EVENT_HANDLERS)

	@staticmethod
	def _is_in_tab_order(node: DOMNode) -> bool:
		"""tabindex >= 0; a negative tabindex takes the element out of keyboard navigation."""
		tabindex = _parse_tabindex(node.attributes.get('tabindex'))
		return tabindex is not None and tabindex >= 0

	@staticmethod
	def _is_content_editable(node: DOMNode) -> bool:
		return node.attributes.get('contenteditable') in {'true', ''}

	@staticmethod
	def _has_pointer_cursor(node: DOMNode) -> bool:
		return node.computed_styles.cursor == 'pointer'

	@staticmethod
	def _is_sizable_frame(node: DOMNode) -> bool:
		"""Tracking pixels and tiny embeds stay out."""
		if not node.is_frame:
			return False
		rect = node.bounding_rect
		return rect.width >= MIN_INTERACTIVE_IFRAME_SIZE and rect.height >= MIN_INTERACTIVE_IFRAME_SIZE

	@staticmethod
	def _looks_like_search_icon(node: DOMNode) -> bool:
		"""Heuristic: class/id mentions search and the cursor is a pointer.

		Can misfire both ways (a decorative element with an inherited pointer cursor
		and "search" in its class is accepted). Kept separate so it can be tuned or dropped.
		"""
		if not ClickableElementDetector._has_pointer_cursor(node):
			return False
		class_attr = node.attributes.get('class', '').lower()
		id_attr = node.attributes.get('id', '').lower()
		return any(token in class_attr or token in id_attr for token in SEARCH_ICON_TOKENS)

	@staticmethod
	def is_interactive(node: DOMNode) -> bool:
		"""Check if this single node is an actionable target. No tree context needed."""
		if not node.is_element:
			return False

		if node.tag_name == 'input' and node.input_type == 'hidden':
			return False

		return (
			ClickableElementDetector._has_interactive_tag(node)
			or ClickableElementDetector._has_interactive_role(node)
			or ClickableElementDetector._has_event_handlers(node)
			or ClickableElementDetector._is_in_tab_order(node)
			or ClickableElementDetector._is_content_editable(node)
			or ClickableElementDetector._has_pointer_cursor(node)
			or ClickableElementDetector._is_sizable_frame(node)
			or ClickableElementDetector._looks_like_search_icon(node)
		)

	@staticmethod
	def count_interactive_descendants(node: DOMNode) -> int:
		"""Interactive nodes below this one, shadow roots included, frame documents not."""
		return sum(
			1
			for descendant in walk_tree(node, include_frames=False)
			if descendant is not node and ClickableElementDetector.is_interactive(descendant)
		)

	@staticmethod
	def should_make_scrollable_interactive(node: DOMNode) -> bool:
		"""A scroll region only needs its own handle when nothing inside it can be acted on."""
		if not node.is_scrollable:
			return False
		return ClickableElementDetector.count_interactive_descendants(node) == 0

	@staticmethod
	def is_actionable(node: DOMNode) -> bool:
		"""Interactive by itself, or a scroll container with nothing interactive inside."""
		return ClickableElementDetector.is_interactive(node) or ClickableElementDetector.should_make_scrollable_interactive(
			node
		)

	@staticmethod
	def is_propagating(node: DOMNode) -> bool:
		"""Button/link-like containers whose contained structure collapses into them."""
		if not node.is_element:
			return False
		if node.tag_name in PROPAGATING_TAGS:
			return True
		return node.tag_name in PROPAGATING_ROLE_HOST_TAGS and node.role in PROPAGATING_ROLES

	@staticmethod
	def should_keep_child_in_propagating_parent(child: DOMNode) -> bool:
		"""Nested controls and labelled elements survive inside a propagating ancestor."""
		if not child.is_element:
			return False
		if child.tag_name in FORM_CONTROL_TAGS:
			return True
		if 'onclick' in child.attributes:
			return True
		if 'aria-label' in child.attributes:
			return True
		if ClickableElementDetector._has_interactive_role(child):
			return True
		return ClickableElementDetector.is_propagating(child)

	@staticmethod
	def get_interactivity_score(node: DOMNode) -> int:
		"""Confidence ranking for overlapping candidates; never used to drop nodes."""
		score = 0
		tag = node.tag_name
		attributes = node.attributes
		role = node.role

		if tag == 'button':
			score += 10
		elif tag == 'a' and attributes.get('href'):
			score += 9
		elif tag in {'input', 'select', 'textarea'}:
			score += 8
		elif tag == 'a':
			score += 7

		if role == 'button':
			score += 6
		elif role == 'link':
			score += 5
		elif role in INTERACTIVE_ROLES:
			score += 4

		if attributes.get('onclick'):
			score += 3
		if ClickableElementDetector._is_in_tab_order(node):
			score += 2
		if ClickableElementDetector._has_pointer_cursor(node):
			score += 1

		return score
