import math
import re
from collections.abc import Callable, Iterable, Iterator
from dataclasses import replace
from typing import Any

from dev_browser.dom.views import DOMNode

# (slot, child, child_context); slot is 'shadow_roots', 'children' or 'content_document'
ChildEntry = tuple[str, DOMNode, Any]

_WHITESPACE_RE = re.compile(r'\s+')
_SELECTOR_SPECIAL_CHARS_RE = re.compile(r'([ !"#$%&\'()*+,./:;<=>?@\[\\\]^`{|}~])')
_LEADING_NUMBER_RE = re.compile(r'^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)')


def collapse_whitespace(text: str) -> str:
	return _WHITESPACE_RE.sub(' ', text).strip()


def cap_text_length(text: str, max_length: int) -> str:
	"""Collapse whitespace and cap to max_length characters, ellipsis included."""
	cleaned = collapse_whitespace(text)
	if len(cleaned) <= max_length:
		return cleaned
	return cleaned[: max_length - 3] + '...'


def escape_selector(value: str) -> str:
	"""Backslash-escape characters that carry meaning in CSS selector syntax."""
	return _SELECTOR_SPECIAL_CHARS_RE.sub(r'\\\1', value)


def escape_css_identifier(value: str) -> str:
	"""Escape a value used as a bare identifier (``#id``); a leading digit needs a hex escape."""
	escaped = escape_selector(value)
	if escaped and escaped[0].isdigit():
		escaped = f'\\{ord(escaped[0]):x} {escaped[1:]}'
	elif len(escaped) > 1 and escaped[0] == '-' and escaped[1].isdigit():
		escaped = f'-\\{ord(escaped[1]):x} {escaped[2:]}'
	return escaped


def escape_attribute_value(value: str) -> str:
	return value.replace('"', '&quot;').replace('<', '&lt;').replace('>', '&gt;')


def parse_number(value: str | None) -> float | None:
	"""Parse the leading number of an attribute value, ``None`` if there is none."""
	if value is None:
		return None
	match = _LEADING_NUMBER_RE.match(value)
	if not match:
		return None
	return float(match.group(1))


def format_number(value: float) -> str:
	"""Render whole numbers without a trailing ``.0``."""
	if math.isfinite(value) and value == int(value):
		return str(int(value))
	return repr(value)


def walk_tree(root: DOMNode, include_frames: bool = True) -> Iterator[DOMNode]:
	"""Pre-order: node, shadow roots, children, then frame document.

	Uses an explicit stack, so arbitrarily deep pages stay clear of the recursion limit.
	"""
	stack = [root]
	while stack:
		node = stack.pop()
		yield node
		if include_frames and node.content_document is not None:
			stack.append(node.content_document)
		stack.extend(reversed(node.children))
		stack.extend(reversed(node.shadow_roots))


def _empty_slots() -> dict[str, list[DOMNode]]:
	return {'shadow_roots': [], 'children': [], 'content_document': []}


def rebuild_tree(
	root: DOMNode,
	expand: Callable[[DOMNode, Any], Iterable[ChildEntry]],
	context: Any = None,
	update: Callable[[DOMNode], dict[str, Any]] | None = None,
) -> DOMNode:
	"""Rebuild a tree bottom-up without recursion.

	``expand(node, context)`` yields the ``(slot, child, child_context)`` entries to keep;
	anything it leaves out is dropped together with its subtree. ``update`` returns extra
	field values for each rebuilt node.
	"""
	result = _empty_slots()
	stack = [(root, iter(expand(root, context)), _empty_slots(), result, 'children')]
	while stack:
		node, pending, built, parent_built, slot = stack[-1]
		entry = next(pending, None)
		if entry is not None:
			child_slot, child, child_context = entry
			stack.append((child, iter(expand(child, child_context)), _empty_slots(), built, child_slot))
			continue

		stack.pop()
		documents = built['content_document']
		parent_built[slot].append(
			replace(
				node,
				shadow_roots=tuple(built['shadow_roots']),
				children=tuple(built['children']),
				content_document=documents[0] if documents else None,
				**(update(node) if update is not None else {}),
			)
		)
	return result['children'][0]
