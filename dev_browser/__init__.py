"""
DOM compaction for browser agents.

Turns a live Playwright page into an indented, indexed text tree plus an
index -> CSS selector map.
"""

from dev_browser.dom.service import DomService, extract_dom_tree, get_llm_tree, process_tree, serialize_dom_tree
from dev_browser.dom.views import DOMNode, GetTreeOptions, SerializedDOMState
from dev_browser.logging_config import setup_logging

__all__ = [
	'DomService',
	'DOMNode',
	'GetTreeOptions',
	'SerializedDOMState',
	'extract_dom_tree',
	'get_llm_tree',
	'process_tree',
	'serialize_dom_tree',
	'setup_logging',
]
