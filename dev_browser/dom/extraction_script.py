# @file purpose: In-page DOM walker evaluated against one document through Playwright

import json

from dev_browser.dom.views import EXCLUDED_TAGS

# Returns a raw nested dict tree rooted at <body>, or null when no root exists.
# Counters live inside the function so each evaluate call numbers independently.
EXTRACT_DOM_SCRIPT = """
(options) => {
	const includeShadowDOM = !options || options.includeShadowDOM !== false;
	const EXCLUDED_TAGS = new Set(__EXCLUDED_TAGS__);
	let paintOrderCounter = 0;

	const TEXT_STYLES = {
		display: 'inline',
		visibility: 'visible',
		opacity: '1',
		cursor: 'auto',
		backgroundColor: 'rgba(0, 0, 0, 0)',
		overflowX: 'visible',
		overflowY: 'visible',
		pointerEvents: 'auto',
	};

	function getComputedStyles(element) {
		const styles = window.getComputedStyle(element);
		return {
			display: styles.display,
			visibility: styles.visibility,
			opacity: styles.opacity,
			cursor: styles.cursor,
			backgroundColor: styles.backgroundColor,
			overflowX: styles.overflowX,
			overflowY: styles.overflowY,
			pointerEvents: styles.pointerEvents,
		};
	}

	function getBoundingRect(element) {
		const rect = element.getBoundingClientRect();
		return {
			x: rect.x + window.scrollX,
			y: rect.y + window.scrollY,
			width: rect.width,
			height: rect.height,
		};
	}

	function getAttributes(element) {
		const attrs = {};
		for (const attr of element.attributes) {
			attrs[attr.name] = attr.value;
		}
		return attrs;
	}

	function isScrollable(element, styles) {
		const canScrollY =
			(styles.overflowY === 'auto' || styles.overflowY === 'scroll') &&
			element.scrollHeight > element.clientHeight;
		const canScrollX =
			(styles.overflowX === 'auto' || styles.overflowX === 'scroll') &&
			element.scrollWidth > element.clientWidth;
		return canScrollY || canScrollX;
	}

	function collapse(text) {
		return (text || '').replace(/\\s+/g, ' ').trim();
	}

	function getDirectText(element) {
		const parts = [];
		for (const child of element.childNodes) {
			if (child.nodeType === Node.TEXT_NODE) {
				const text = collapse(child.textContent);
				if (text) {
					parts.push(text);
				}
			}
		}
		return parts.join(' ');
	}

	function getTypePosition(element) {
		const parent = element.parentNode;
		if (!parent) {
			return [1, 1];
		}
		let position = 0;
		let count = 0;
		for (const sibling of parent.children) {
			if (sibling.tagName === element.tagName) {
				count++;
				if (sibling === element) {
					position = count;
				}
			}
		}
		return [position || 1, count || 1];
	}

	function extractText(node) {
		const text = collapse(node.textContent);
		if (text.length < 2) {
			return null;
		}
		const parent = node.parentElement;
		return {
			nodeType: 3,
			tagName: '#text',
			attributes: {},
			textContent: text,
			boundingRect: parent ? getBoundingRect(parent) : { x: 0, y: 0, width: 0, height: 0 },
			computedStyles: TEXT_STYLES,
			paintOrder: paintOrderCounter++,
			children: [],
			shadowRoots: [],
		};
	}

	function extractShadowRoot(shadowRoot) {
		const paintOrder = paintOrderCounter++;
		const children = extractChildren(shadowRoot);
		if (children.length === 0) {
			return null;
		}
		return {
			nodeType: 11,
			tagName: '#shadow-root',
			attributes: {},
			textContent: '',
			boundingRect: { x: 0, y: 0, width: 0, height: 0 },
			computedStyles: Object.assign({}, TEXT_STYLES, { display: 'contents' }),
			paintOrder,
			children,
			shadowRoots: [],
			shadowMode: shadowRoot.mode || 'open',
		};
	}

	function extractElement(element) {
		const tagName = element.tagName.toLowerCase();
		if (EXCLUDED_TAGS.has(tagName)) {
			return null;
		}

		const paintOrder = paintOrderCounter++;
		const styles = getComputedStyles(element);
		const isFrame = tagName === 'iframe' || tagName === 'frame';
		const [nthOfType, sameTypeCount] = getTypePosition(element);

		const shadowRoots = [];
		if (includeShadowDOM && element.shadowRoot) {
			const shadow = extractShadowRoot(element.shadowRoot);
			if (shadow) {
				shadowRoots.push(shadow);
			}
		}

		return {
			nodeType: 1,
			tagName,
			attributes: getAttributes(element),
			textContent: getDirectText(element),
			boundingRect: getBoundingRect(element),
			computedStyles: styles,
			isScrollable: isScrollable(element, styles),
			scrollTop: element.scrollTop,
			scrollLeft: element.scrollLeft,
			scrollHeight: element.scrollHeight,
			scrollWidth: element.scrollWidth,
			clientHeight: element.clientHeight,
			clientWidth: element.clientWidth,
			paintOrder,
			shadowRoots,
			children: extractChildren(element),
			isFrame,
			frameUrl: isFrame ? (element.src || element.getAttribute('src') || '') : null,
			nthOfType,
			sameTypeCount,
		};
	}

	function extractNode(node) {
		try {
			if (node.nodeType === Node.TEXT_NODE) {
				return extractText(node);
			}
			if (node.nodeType === Node.ELEMENT_NODE) {
				return extractElement(node);
			}
		} catch (e) {
			// unreadable node, leave it out
		}
		return null;
	}

	function extractChildren(parent) {
		const children = [];
		for (const child of parent.childNodes) {
			const extracted = extractNode(child);
			if (extracted) {
				children.push(extracted);
			}
		}
		return children;
	}

	const root = document.body || document.documentElement;
	if (!root) {
		return null;
	}
	const tree = extractElement(root);
	if (tree) {
		tree.viewportWidth = window.innerWidth;
		tree.viewportHeight = window.innerHeight;
	}
	return tree;
}
""".replace('__EXCLUDED_TAGS__', json.dumps(sorted(EXCLUDED_TAGS)))
