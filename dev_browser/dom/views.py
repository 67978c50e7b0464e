from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from dev_browser.config import CONFIG

# Attributes rendered by the serializer, in output order
DEFAULT_INCLUDE_ATTRIBUTES = [
	# core
	'type',
	'id',
	'name',
	'role',
	'class',
	# form state
	'placeholder',
	'value',
	'checked',
	'selected',
	'disabled',
	'required',
	'readonly',
	# aria
	'aria-label',
	'aria-expanded',
	'aria-checked',
	'aria-disabled',
	'aria-placeholder',
	'aria-valuemin',
	'aria-valuemax',
	'aria-valuenow',
	# links
	'href',
	'target',
	# media
	'alt',
	'title',
	'src',
	# validation
	'min',
	'max',
	'minlength',
	'maxlength',
	'pattern',
	'step',
	'inputmode',
	'autocomplete',
	'accept',
	'multiple',
	# testing hooks
	'data-testid',
	'data-date-format',
	'contenteditable',
	'tabindex',
]

INTERACTIVE_TAGS = frozenset(
	{
		'button',
		'input',
		'select',
		'textarea',
		'a',
		'details',
		'summary',
		'option',
		'optgroup',
	}
)

INTERACTIVE_ROLES = frozenset(
	{
		'button',
		'link',
		'menuitem',
		'menuitemcheckbox',
		'menuitemradio',
		'option',
		'radio',
		'checkbox',
		'tab',
		'textbox',
		'combobox',
		'slider',
		'spinbutton',
		'listbox',
		'searchbox',
		'switch',
		'treeitem',
	}
)

INTERACTIVE_EVENT_HANDLERS = (
	'onclick',
	'onmousedown',
	'onmouseup',
	'onkeydown',
	'onkeyup',
	'ontouchstart',
	'ontouchend',
)

# Tags/roles whose fully-contained structural children collapse into them
PROPAGATING_TAGS = frozenset({'button', 'a'})
PROPAGATING_ROLES = frozenset({'button', 'combobox'})
PROPAGATING_ROLE_HOST_TAGS = frozenset({'div', 'span', 'input'})

# Never enter the tree, subtree included
EXCLUDED_TAGS = frozenset({'script', 'style', 'noscript', 'meta', 'link', 'head', 'title'})

MIN_INTERACTIVE_IFRAME_SIZE = 100

CONTAINMENT_THRESHOLD = 0.99
OPAQUE_ALPHA_THRESHOLD = 0.9


class NodeType(int, Enum):
	"""DOM nodeType values for the node kinds kept in the tree."""

	ELEMENT_NODE = 1
	TEXT_NODE = 3
	DOCUMENT_FRAGMENT_NODE = 11


@dataclass(slots=True, frozen=True)
class BoundingRect:
	"""Axis-aligned box in document coordinates."""

	x: float = 0.0
	y: float = 0.0
	width: float = 0.0
	height: float = 0.0

	@property
	def area(self) -> float:
		return self.width * self.height

	@property
	def right(self) -> float:
		return self.x + self.width

	@property
	def bottom(self) -> float:
		return self.y + self.height


@dataclass(slots=True, frozen=True)
class ComputedStyles:
	"""The subset of computed CSS the pipeline decides on."""

	display: str = 'inline'
	visibility: str = 'visible'
	opacity: str = '1'
	cursor: str = 'auto'
	background_color: str = 'rgba(0, 0, 0, 0)'
	overflow_x: str = 'visible'
	overflow_y: str = 'visible'
	pointer_events: str = 'auto'


@dataclass(slots=True, frozen=True)
class DOMNode:
	"""One element, text node or open shadow root of an extracted page.

	Nodes are never mutated after construction; filtering stages build new
	nodes with ``dataclasses.replace``. ``paint_order`` is only comparable
	between nodes of the same document (a frame's content document carries its
	own numbering).
	"""

	node_id: int
	node_type: NodeType
	tag_name: str
	attributes: dict[str, str] = field(default_factory=dict)
	text: str = ''
	bounding_rect: BoundingRect = field(default_factory=BoundingRect)
	computed_styles: ComputedStyles = field(default_factory=ComputedStyles)

	is_scrollable: bool = False
	scroll_top: float = 0.0
	scroll_left: float = 0.0
	scroll_height: float = 0.0
	scroll_width: float = 0.0
	client_height: float = 0.0
	client_width: float = 0.0

	paint_order: int = 0

	children: tuple['DOMNode', ...] = ()
	shadow_roots: tuple['DOMNode', ...] = ()
	shadow_mode: str | None = None
	content_document: 'DOMNode | None' = None
	is_frame: bool = False
	frame_url: str | None = None

	# position among same-tag element siblings in the live DOM, 1-based
	nth_of_type: int = 1
	same_type_count: int = 1

	# root only
	viewport_width: float | None = None
	viewport_height: float | None = None

	ignored_by_paint_order: bool = False

	@property
	def is_element(self) -> bool:
		return self.node_type == NodeType.ELEMENT_NODE

	@property
	def is_text(self) -> bool:
		return self.node_type == NodeType.TEXT_NODE

	@property
	def is_shadow_root(self) -> bool:
		return self.node_type == NodeType.DOCUMENT_FRAGMENT_NODE

	@property
	def role(self) -> str | None:
		role = self.attributes.get('role')
		return role.lower() if role is not None else None

	@property
	def input_type(self) -> str | None:
		input_type = self.attributes.get('type')
		return input_type.lower() if input_type is not None else None

	def __repr__(self) -> str:
		return f'<DOMNode #{self.node_id} {self.tag_name} children={len(self.children)}>'


@dataclass(slots=True, frozen=True)
class CompoundComponent:
	"""A virtual sub-control of a native composite element (e.g. the increment button of a number input)."""

	name: str
	role: str
	min: float | None = None
	max: float | None = None
	current: str | None = None
	options: tuple[str, ...] | None = None
	format: str | None = None


DOMSelectorMap = dict[int, str]


class GetTreeOptions(BaseModel):
	"""Options for extracting and serializing a page tree."""

	model_config = ConfigDict(extra='forbid')

	previous_state: set[int] | None = Field(
		default=None, description='node ids seen in an earlier serialization, enables *[n] novelty markers'
	)
	max_text_length: int = Field(default_factory=lambda: CONFIG.DEV_BROWSER_MAX_TEXT_LENGTH, ge=4)
	max_attribute_length: int = Field(
		default_factory=lambda: CONFIG.DEV_BROWSER_MAX_ATTRIBUTE_LENGTH, ge=4, description='cap for rendered attribute values'
	)
	include_attributes: list[str] = Field(default_factory=lambda: list(DEFAULT_INCLUDE_ATTRIBUTES))
	include_iframes: bool = True
	include_shadow_dom: bool = True
	enable_paint_order_filtering: bool = True
	enable_bbox_filtering: bool = True
	frame_timeout: float | None = Field(default=None, gt=0, description='seconds per frame, defaults to CONFIG')


class SerializedDOMState(BaseModel):
	"""Result of one serialization: the text tree plus index lookups."""

	tree: str = ''
	selector_map: DOMSelectorMap = Field(default_factory=dict)
	node_ids: dict[int, int] = Field(default_factory=dict, description='interactive index -> internal node id')

	def known_node_ids(self) -> set[int]:
		"""Node ids to pass back as ``previous_state`` on the next call."""
		return set(self.node_ids.values())
