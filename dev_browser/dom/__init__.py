from dev_browser.dom.serializer.serializer import DOMTreeSerializer, assign_indices, build_selector_map
from dev_browser.dom.service import DomService, extract_dom_tree, get_llm_tree, process_tree, serialize_dom_tree
from dev_browser.dom.views import (
	BoundingRect,
	CompoundComponent,
	ComputedStyles,
	DOMNode,
	DOMSelectorMap,
	GetTreeOptions,
	NodeType,
	SerializedDOMState,
)

__all__ = [
	'BoundingRect',
	'CompoundComponent',
	'ComputedStyles',
	'DOMNode',
	'DOMSelectorMap',
	'DOMTreeSerializer',
	'DomService',
	'GetTreeOptions',
	'NodeType',
	'SerializedDOMState',
	'assign_indices',
	'build_selector_map',
	'extract_dom_tree',
	'get_llm_tree',
	'process_tree',
	'serialize_dom_tree',
]
