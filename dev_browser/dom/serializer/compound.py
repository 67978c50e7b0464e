# @file purpose: Virtual sub-controls for native composite form and media elements

from dev_browser.dom.utils import format_number, parse_number
from dev_browser.dom.views import CompoundComponent, DOMNode

MAX_LISTED_OPTIONS = 4

DATE_INPUT_FORMATS = {
	'date': 'YYYY-MM-DD',
	'time': 'HH:MM',
	'datetime-local': 'YYYY-MM-DDTHH:MM',
}

MEDIA_CONTROLS = (
	CompoundComponent(name='Play/Pause', role='button'),
	CompoundComponent(name='Progress', role='slider', min=0, max=100),
	CompoundComponent(name='Volume', role='slider', min=0, max=100),
	CompoundComponent(name='Mute', role='button'),
)
FULLSCREEN_CONTROL = CompoundComponent(name='Fullscreen', role='button')

COMPOUND_INPUT_TYPES = frozenset({'file', 'range', 'number', 'color', *DATE_INPUT_FORMATS})


def _option_label(option: DOMNode) -> str:
	return option.text or option.attributes.get('value', '')


def _select_options(node: DOMNode) -> list[DOMNode]:
	options = []
	for child in node.children:
		if child.tag_name == 'option':
			options.append(child)
		elif child.tag_name == 'optgroup':
			options.extend(grandchild for grandchild in child.children if grandchild.tag_name == 'option')
	return options


def _select_components(node: DOMNode) -> list[CompoundComponent]:
	options = _select_options(node)

	labels = [_option_label(option) for option in options[:MAX_LISTED_OPTIONS]]
	remaining = len(options) - MAX_LISTED_OPTIONS
	if remaining > 0:
		labels.append(f'... +{remaining} more')

	current = None
	selected = next((option for option in options if 'selected' in option.attributes), None)
	if selected is not None:
		current = _option_label(selected)
	elif options:
		current = _option_label(options[0])

	return [CompoundComponent(name='Dropdown Toggle', role='combobox', options=tuple(labels), current=current)]


def _file_components(node: DOMNode) -> list[CompoundComponent]:
	accept = node.attributes.get('accept')
	return [
		CompoundComponent(name='Browse Files', role='button'),
		CompoundComponent(
			name='Files Selected' if 'multiple' in node.attributes else 'File Selected',
			role='textbox',
			format=f'Accepts: {accept}' if accept else None,
		),
	]


def _range_components(node: DOMNode) -> list[CompoundComponent]:
	minimum = parse_number(node.attributes.get('min'))
	maximum = parse_number(node.attributes.get('max'))
	minimum = 0.0 if minimum is None else minimum
	maximum = 100.0 if maximum is None else maximum

	current = parse_number(node.attributes.get('value'))
	if current is None:
		current = (minimum + maximum) / 2

	step = node.attributes.get('step')
	return [
		CompoundComponent(
			name='Slider',
			role='slider',
			min=minimum,
			max=maximum,
			current=format_number(current),
			format=f'Step: {step}' if step else None,
		)
	]


def _number_components(node: DOMNode) -> list[CompoundComponent]:
	return [
		CompoundComponent(name='Decrement', role='button'),
		CompoundComponent(
			name='Value',
			role='spinbutton',
			min=parse_number(node.attributes.get('min')),
			max=parse_number(node.attributes.get('max')),
			current=node.attributes.get('value'),
		),
		CompoundComponent(name='Increment', role='button'),
	]


def _date_components(node: DOMNode, date_format: str) -> list[CompoundComponent]:
	return [
		CompoundComponent(name='Date Picker', role='textbox', format=date_format, current=node.attributes.get('value'))
	]


def _color_components(node: DOMNode) -> list[CompoundComponent]:
	return [
		CompoundComponent(
			name='Color Picker', role='button', current=node.attributes.get('value') or '#000000', format='Hex color'
		)
	]


def _media_components(node: DOMNode, fullscreen: bool) -> list[CompoundComponent]:
	# without controls the browser renders no native chrome
	if 'controls' not in node.attributes:
		return []
	components = list(MEDIA_CONTROLS)
	if fullscreen:
		components.append(FULLSCREEN_CONTROL)
	return components


def _details_components(node: DOMNode) -> list[CompoundComponent]:
	state = 'expanded' if 'open' in node.attributes else 'collapsed'
	return [CompoundComponent(name='Toggle', role='button', current=state)]


def get_compound_components(node: DOMNode) -> list[CompoundComponent]:
	"""Virtual sub-controls for one node, decided by tag, input type and attributes only."""
	if not node.is_element:
		return []

	tag = node.tag_name
	if tag == 'select':
		return _select_components(node)
	if tag == 'video':
		return _media_components(node, fullscreen=True)
	if tag == 'audio':
		return _media_components(node, fullscreen=False)
	if tag == 'details':
		return _details_components(node)
	if tag != 'input':
		return []

	input_type = node.input_type
	if input_type == 'file':
		return _file_components(node)
	if input_type == 'range':
		return _range_components(node)
	if input_type == 'number':
		return _number_components(node)
	if input_type in DATE_INPUT_FORMATS:
		return _date_components(node, DATE_INPUT_FORMATS[input_type])
	if input_type == 'color':
		return _color_components(node)
	return []


def has_compound_components(node: DOMNode) -> bool:
	if not node.is_element:
		return False
	tag = node.tag_name
	if tag == 'select' or tag == 'details':
		return True
	if tag in {'video', 'audio'}:
		return 'controls' in node.attributes
	if tag == 'input':
		return node.input_type in COMPOUND_INPUT_TYPES
	return False


def format_compound_annotation(components: list[CompoundComponent]) -> str:
	"""Render components as ``{Name (role) [min-max]: current (format) Options: [..] | ...}``."""
	if not components:
		return ''

	parts = []
	for component in components:
		text = f'{component.name} ({component.role})'
		if component.min is not None and component.max is not None:
			text += f' [{format_number(component.min)}-{format_number(component.max)}]'
		if component.current is not None:
			text += f': {component.current}'
		if component.format is not None:
			text += f' ({component.format})'
		if component.options:
			text += f' Options: [{", ".join(component.options)}]'
		parts.append(text)

	return '{' + ' | '.join(parts) + '}'
