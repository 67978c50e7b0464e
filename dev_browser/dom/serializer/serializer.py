# @file purpose: Serializes filtered DOM trees to indexed text for LLM consumption

import logging

from dev_browser.dom.serializer.clickable_elements import ClickableElementDetector
from dev_browser.dom.serializer.compound import format_compound_annotation, get_compound_components
from dev_browser.dom.utils import cap_text_length, escape_attribute_value, escape_css_identifier, escape_selector
from dev_browser.dom.views import DEFAULT_INCLUDE_ATTRIBUTES, DOMNode, DOMSelectorMap, GetTreeOptions, SerializedDOMState
from dev_browser.dom.visibility import is_visible
from dev_browser.utils import time_execution_sync

logger = logging.getLogger(__name__)

NAME_SELECTOR_TAGS = frozenset({'input', 'select', 'textarea'})
GROUPED_INPUT_TYPES = frozenset({'radio', 'checkbox'})

# node, depth, ancestors
_PendingNode = tuple[DOMNode, int, list[DOMNode]]


class DOMTreeSerializer:
	"""Serializes a filtered DOM tree into indented text plus an index -> selector map.

	One depth-first pass: every actionable node gets the next index, starting at 1.
	"""

	def __init__(self, root_node: DOMNode | None, options: GetTreeOptions | None = None):
		self.root_node = root_node
		self.options = options or GetTreeOptions()
		self._interactive_counter = 1
		self._selector_map: DOMSelectorMap = {}
		self._node_ids: dict[int, int] = {}
		# keyed by node_id, scroll containers look at their whole subtree
		self._actionable_cache: dict[int, bool] = {}

	@time_execution_sync('--serialize_accessible_elements')
	def serialize_accessible_elements(self) -> SerializedDOMState:
		self._interactive_counter = 1
		self._selector_map = {}
		self._node_ids = {}
		self._actionable_cache = {}

		if self.root_node is None:
			return SerializedDOMState()

		lines: list[str] = []
		# pending nodes and closing-tag lines; no recursion, page depth is unbounded
		stack: list[_PendingNode | str] = [(self.root_node, 0, [])]
		while stack:
			item = stack.pop()
			if isinstance(item, str):
				lines.append(item)
				continue
			stack.extend(reversed(self._serialize_node(*item, lines)))

		logger.debug(f'Serialized tree with {len(self._selector_map)} interactive elements')
		return SerializedDOMState(tree='\n'.join(lines), selector_map=self._selector_map, node_ids=self._node_ids)

	def _is_actionable_cached(self, node: DOMNode) -> bool:
		if node.node_id not in self._actionable_cache:
			self._actionable_cache[node.node_id] = ClickableElementDetector.is_actionable(node)
		return self._actionable_cache[node.node_id]

	def _serialize_node(
		self, node: DOMNode, depth: int, ancestors: list[DOMNode], lines: list[str]
	) -> list[_PendingNode | str]:
		"""Emit this node's own lines; return what follows it, in output order."""
		if node.is_text or not is_visible(node):
			return []

		indent = '\t' * depth

		if node.is_shadow_root:
			lines.append(f'{indent}|SHADOW({node.shadow_mode or "open"})|')
			# shadow content shares its host's selector path
			return [(child, depth + 1, [*ancestors, node]) for child in node.children]

		if node.is_frame and node.content_document is not None:
			lines.append(f'{indent}|IFRAME|')
			# selectors inside a frame are relative to the frame's own document
			return [(node.content_document, depth + 1, [])]

		prefix = ''
		if not node.ignored_by_paint_order and self._is_actionable_cached(node):
			index = self._interactive_counter
			self._interactive_counter += 1
			self._selector_map[index] = self.build_selector(node, ancestors)
			self._node_ids[index] = node.node_id

			previous_state = self.options.previous_state
			is_new = previous_state is not None and node.node_id not in previous_state
			prefix = f'*[{index}]' if is_new else f'[{index}]'

		if node.is_scrollable:
			prefix = f'|SCROLL|{prefix}'

		tag = node.tag_name
		attributes_str = self.build_attributes_string(node, self.options.include_attributes, self.options.max_attribute_length)
		attributes_part = f' {attributes_str}' if attributes_str else ''
		text = cap_text_length(node.text, self.options.max_text_length)

		annotations = [self.get_scroll_info(node), format_compound_annotation(get_compound_components(node))]
		suffix = ''.join(f' {annotation}' for annotation in annotations if annotation)

		has_element_children = any(not child.is_text and is_visible(child) for child in node.children)
		has_shadow_roots = bool(node.shadow_roots)

		if not has_element_children and not has_shadow_roots:
			if text:
				lines.append(f'{indent}{prefix}<{tag}{attributes_part}>{text}</{tag}>{suffix}')
			else:
				lines.append(f'{indent}{prefix}<{tag}{attributes_part} />{suffix}')
			return []

		lines.append(f'{indent}{prefix}<{tag}{attributes_part}>{suffix}')
		if text:
			# mixed content: the element's own text gets its own line and is never dropped
			lines.append(f'{indent}\t{text}')
		child_ancestors = [*ancestors, node]
		pending: list[_PendingNode | str] = [(shadow, depth + 1, child_ancestors) for shadow in node.shadow_roots]
		pending.extend((child, depth + 1, child_ancestors) for child in node.children)
		pending.append(f'{indent}</{tag}>')
		return pending

	@staticmethod
	def build_selector(node: DOMNode, ancestors: list[DOMNode] | None = None) -> str:
		"""CSS selector for re-locating ``node``: id, data-testid, form name, then a tag path.

		The path restarts at the nearest ancestor with an id and uses the node's
		live-DOM nth-of-type position whenever same-tag siblings exist.
		"""
		if not node.is_element:
			return ''

		attributes = node.attributes
		if attributes.get('id'):
			return f'#{escape_css_identifier(attributes["id"])}'

		if attributes.get('data-testid'):
			return f'[data-testid="{escape_selector(attributes["data-testid"])}"]'

		if node.tag_name in NAME_SELECTOR_TAGS and attributes.get('name'):
			selector = f'{node.tag_name}[name="{escape_selector(attributes["name"])}"]'
			# radio/checkbox groups share a name
			if node.input_type in GROUPED_INPUT_TYPES and attributes.get('value'):
				selector += f'[value="{escape_selector(attributes["value"])}"]'
			return selector

		parts: list[str] = []
		for current in [*(ancestors or []), node]:
			if not current.is_element:
				continue
			current_id = current.attributes.get('id')
			if current_id:
				parts = [f'#{escape_css_identifier(current_id)}']
			elif current.same_type_count > 1:
				parts.append(f'{current.tag_name}:nth-of-type({current.nth_of_type})')
			else:
				parts.append(current.tag_name)

		return ' > '.join(parts)

	@staticmethod
	def build_attributes_string(
		node: DOMNode,
		include_attributes: list[str] | None = None,
		max_value_length: int | None = None,
	) -> str:
		"""Render allow-listed attributes; repeated values are dropped, boolean-style ones become bare names."""
		if not node.attributes:
			return ''

		parts: list[str] = []
		seen_values: set[str] = set()
		for name in include_attributes if include_attributes is not None else DEFAULT_INCLUDE_ATTRIBUTES:
			if name not in node.attributes:
				continue

			value = node.attributes[name].strip()
			if value == '' or value == name:
				parts.append(name)
				continue

			if value in seen_values:
				continue
			seen_values.add(value)

			if max_value_length is not None:
				value = cap_text_length(value, max_value_length)
			parts.append(f'{name}="{escape_attribute_value(value)}"')

		return ' '.join(parts)

	@staticmethod
	def get_scroll_info(node: DOMNode) -> str:
		"""``(X pages above, Y pages below)`` when the vertical content overflows, else ''."""
		if not node.is_scrollable or node.client_height <= 0:
			return ''
		if node.scroll_height <= node.client_height:
			return ''

		pages_above = node.scroll_top / node.client_height
		pages_below = max(0.0, (node.scroll_height - node.scroll_top - node.client_height) / node.client_height)
		return f'({pages_above:.1f} pages above, {pages_below:.1f} pages below)'



def assign_indices(root: DOMNode | None, options: GetTreeOptions | None = None) -> dict[int, int]:
	"""node_id -> interactive index, exactly as a serialization of ``root`` would number them."""
	state = DOMTreeSerializer(root, options).serialize_accessible_elements()
	return {node_id: index for index, node_id in state.node_ids.items()}


def build_selector_map(root: DOMNode | None, node_to_index: dict[int, int]) -> DOMSelectorMap:
	"""Selectors for an existing ``node_id -> index`` assignment, e.g. one kept from an earlier call."""
	selector_map: DOMSelectorMap = {}
	if root is None:
		return selector_map

	stack: list[tuple[DOMNode, list[DOMNode]]] = [(root, [])]
	while stack:
		node, ancestors = stack.pop()
		index = node_to_index.get(node.node_id)
		if index is not None:
			selector_map[index] = DOMTreeSerializer.build_selector(node, ancestors)

		if node.content_document is not None:
			stack.append((node.content_document, []))
		child_ancestors = [*ancestors, node]
		stack.extend((child, child_ancestors) for child in reversed(node.children))
		stack.extend((shadow, child_ancestors) for shadow in reversed(node.shadow_roots))

	return dict(sorted(selector_map.items()))
