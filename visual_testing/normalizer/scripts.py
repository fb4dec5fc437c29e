"""JavaScript sent to the page by the normalizer.

Each script is a function expression taking one JSON-serializable argument.
The get/set text scripts share ``_COLLECT_TEXT_NODES`` so both walk the DOM in
exactly the same order.
"""

from __future__ import annotations

HIDDEN_CLASS = "e2e-visual-testing-hidden"
GLOBAL_STYLE_ID = "e2e-visual-testing-global-styles"
# Set on elements that had no class attribute before hiding
ADDED_CLASS_MARKER = "data-e2e-visual-testing-added-class"

_COLLECT_TEXT_NODES = """
    const collectTextNodes = (root) => {
        const found = [];
        for (let node = root.firstChild; node; node = node.nextSibling) {
            if (node.nodeType === Node.TEXT_NODE) {
                found.push(node);
            } else {
                found.push(...collectTextNodes(node));
            }
        }
        return found;
    };
    const targets = Array.from(document.querySelectorAll(selectors.join(',')));
    const textNodes = targets.flatMap((el) => collectTextNodes(el));
"""

GET_TEXTS_SCRIPT = """({ selectors }) => {""" + _COLLECT_TEXT_NODES + """
    return textNodes.map((node) => node.textContent);
}"""

SET_TEXTS_SCRIPT = """({ selectors, texts }) => {""" + _COLLECT_TEXT_NODES + """
    if (texts.length !== textNodes.length) {
        return { applied: false, found: textNodes.length };
    }
    textNodes.forEach((node, i) => { node.textContent = texts[i]; });
    return { applied: true, found: textNodes.length };
}"""

# A global class rule is easier to undo than inline display styles, but does
# not reach into shadow DOM.
HIDE_ELEMENTS_SCRIPT = """({ selectors, className, styleId, markerAttr }) => {
    if (!document.getElementById(styleId)) {
        const style = document.createElement('style');
        style.id = styleId;
        style.type = 'text/css';
        style.textContent = `.${className} { display: none; }`;
        document.head.appendChild(style);
    }
    const nodes = document.querySelectorAll(selectors.join(','));
    nodes.forEach((node) => {
        if (!node.hasAttribute('class')) {
            node.setAttribute(markerAttr, '');
        }
        node.classList.add(className);
    });
    return nodes.length;
}"""

SHOW_ELEMENTS_SCRIPT = """({ className, styleId, markerAttr }) => {
    document.querySelectorAll(`style#${styleId}`).forEach((style) => style.remove());
    const nodes = document.querySelectorAll(`.${className}`);
    nodes.forEach((node) => {
        node.classList.remove(className);
        if (node.hasAttribute(markerAttr)) {
            node.removeAttribute(markerAttr);
            if (node.classList.length === 0) {
                node.removeAttribute('class');
            }
        }
    });
    return nodes.length;
}"""
