"""
Page-level analysis: rendering-method fingerprinting and
element extraction with CSS selector derivation.

Both entry points are best-effort: they log failures and return a
neutral result (``"unknown"`` or an empty list) instead of raising,
because a partial analysis is more useful than none.
"""

from __future__ import annotations

import re
from typing import Any

import pydantic
from playwright import async_api

from scraper_analytics.models import report
from scraper_analytics.utils import errors, logger

log = logger.create_logger("PageAnalyzer")

# ============================================================================
# Rendering-method fingerprints
# ============================================================================

SERVER_FRAMEWORK_MARKERS = ("__NEXT_DATA__", "window.__NUXT__")
SSR_MARKERS = ("data-ssr", "data-server-rendered")
REACT_MARKERS = ("data-reactroot", "data-reactid", "data-react-helmet")
VUE_MARKERS = ("data-server-rendered", "v-bind", "v-on:")
ANGULAR_MARKERS = ("ng-version", "_nghost", "_ngcontent")

MINIMAL_BODY_LENGTH = 500

_BODY_RE = re.compile(r"<body[^>]*>([\s\S]*?)</body>", re.IGNORECASE)


def _contains_any(markup: str, markers: tuple[str, ...]) -> bool:
    return any(marker in markup for marker in markers)


def has_minimal_body(markup: str) -> bool:
    """Return whether the ``<body>`` looks like an empty app shell.

    A shell has some markup, but less than ``MINIMAL_BODY_LENGTH``
    characters of it and no ``<article>`` or ``<section>`` tags.
    """
    match = _BODY_RE.search(markup)
    body = match.group(1) if match else ""
    return (
        bool(body)
        and len(body) < MINIMAL_BODY_LENGTH
        and "<article" not in body
        and "<section" not in body
    )


def classify_markup(markup: str) -> report.RenderMethod:
    """Classify serialized document markup as server- or client-rendered.

    Server-side framework payloads win over hydration markers, since
    SSR frameworks also hydrate on the client.
    """
    if _contains_any(markup, SERVER_FRAMEWORK_MARKERS) or _contains_any(markup, SSR_MARKERS):
        return "server"
    if (
        _contains_any(markup, REACT_MARKERS)
        or _contains_any(markup, VUE_MARKERS)
        or _contains_any(markup, ANGULAR_MARKERS)
        or has_minimal_body(markup)
    ):
        return "client"
    return "unknown"


async def detect_render_method(page: async_api.Page) -> report.RenderMethod:
    """Read the page markup once and classify its rendering method."""
    try:
        markup = await page.content()
    except Exception as exc:
        log.error("Failed to detect render method", {"error": errors.get_error_message(exc)})
        return "unknown"
    method = classify_markup(markup)
    log.debug("Render method detected", {"renderMethod": method, "markupLength": len(markup)})
    return method


# ============================================================================
# Element extraction
# ============================================================================

FILTER_SELECTORS: dict[str, str] = {
    "text": "p, h1, h2, h3, h4, h5, h6, span",
    "image": "img",
    "link": "a",
    "script": "script",
}

MAX_SELECTOR_DEPTH = 4

# Runs inside the page. Receives ``[filterType, cssQuery, maxDepth]`` and
# returns plain objects; per-element failures are reported in an
# ``error`` field instead of thrown.
_EXTRACT_ELEMENTS_JS = """
([type, query, maxDepth]) => {
    const cache = new Map();

    const escapeIdent = (value) => {
        if (window.CSS && typeof window.CSS.escape === 'function') {
            return window.CSS.escape(value);
        }
        return value.replace(/([ #;&,.+*~':"!^$\\[\\]()=>|\\/\\\\])/g, '\\\\$1');
    };

    const queryAll = (selector) => {
        if (!cache.has(selector)) {
            let found = null;
            try {
                found = Array.from(document.querySelectorAll(selector));
            } catch (e) {
                found = null;
            }
            cache.set(selector, found);
        }
        return cache.get(selector);
    };

    const clearlyNotUnique = (selector) => {
        const found = queryAll(selector);
        return found !== null && found.length > 1;
    };

    const uniqueFor = (selector, el) => {
        const found = queryAll(selector);
        return found !== null && found.length === 1 && found[0] === el;
    };

    const idOf = (el) => (typeof el.id === 'string' && el.id.trim()) ? el.id : '';
    const tagOf = (el) => (el.tagName || '').toLowerCase();
    const classesOf = (el) => {
        const raw = el.getAttribute ? el.getAttribute('class') : null;
        return raw ? raw.trim().split(/\\s+/).filter(Boolean) : [];
    };

    const partFor = (el) => {
        const id = idOf(el);
        if (id) return '#' + escapeIdent(id);
        const classes = classesOf(el);
        const tag = tagOf(el);
        return classes.length ? tag + '.' + classes.map(escapeIdent).join('.') : tag;
    };

    const selectorFor = (el) => {
        const id = idOf(el);
        if (id) return '#' + escapeIdent(id);

        const classes = classesOf(el);
        const classSelector = classes.length ? '.' + classes.map(escapeIdent).join('.') : '';
        if (classSelector && !clearlyNotUnique(classSelector)) return classSelector;

        const tag = tagOf(el);
        if (!classSelector && tag && !clearlyNotUnique(tag)) return tag;

        const parts = [];
        let current = el;
        for (let depth = 0; current && current.nodeType === 1 && depth < maxDepth; depth++) {
            const part = partFor(current);
            if (part) parts.unshift(part);
            if (idOf(current)) break;
            current = current.parentElement;
        }
        for (let size = 1; size <= parts.length; size++) {
            const candidate = parts.slice(-size).join(' > ');
            if (uniqueFor(candidate, el)) return candidate;
        }
        return classSelector || tag;
    };

    const contentFor = (el) => {
        const text = () => (el.textContent || '').trim();
        switch (type) {
            case 'text': return text();
            case 'image': return el.getAttribute('src') || '';
            case 'link': return el.getAttribute('href') || '';
            case 'script': {
                const src = el.getAttribute('src');
                return src !== null ? src : text();
            }
            default: return '';
        }
    };

    const attributesOf = (el) => {
        const attrs = {};
        for (const name of el.getAttributeNames()) {
            attrs[name] = el.getAttribute(name) || '';
        }
        return attrs;
    };

    return Array.from(document.querySelectorAll(query)).map((el) => {
        const tag = tagOf(el);
        const item = { content: '', selector: tag, type, tag, attributes: {} };
        const failures = [];
        try {
            item.selector = selectorFor(el) || tag;
        } catch (e) {
            failures.push('selector: ' + e);
        }
        try {
            item.content = contentFor(el);
        } catch (e) {
            failures.push('content: ' + e);
        }
        try {
            item.attributes = attributesOf(el);
        } catch (e) {
            failures.push('attributes: ' + e);
        }
        if (failures.length) item.error = failures.join('; ');
        return item;
    });
}
"""


def parse_extracted_elements(raw: Any, filter_type: str) -> list[report.ExtractedElement]:
    """Validate the objects returned by the in-page script.

    Elements that fail validation are logged and skipped; partial
    per-element failures reported by the script are logged and the
    element is kept with whatever was recovered.
    """
    if not isinstance(raw, list):
        return []

    elements: list[report.ExtractedElement] = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            log.warn("Skipping malformed element", {"index": index})
            continue
        failure = item.pop("error", None)
        if failure:
            log.warn("Partial element extraction", {"index": index, "error": str(failure)})
        try:
            elements.append(report.ExtractedElement.model_validate(item))
        except pydantic.ValidationError as exc:
            log.warn(
                "Skipping invalid element",
                {"index": index, "filterType": filter_type, "error": str(exc)},
            )
    return elements


async def extract_elements(
    page: async_api.Page,
    filter_type: report.FilterType,
    max_depth: int = MAX_SELECTOR_DEPTH,
) -> list[report.ExtractedElement]:
    """Collect elements of *filter_type* with a derived CSS selector each.

    Selector priority is ``#id``, then the element's class selector,
    then the shortest unique ``parent > child`` chain within
    *max_depth* ancestors. When nothing unique is found the plain
    class or tag selector is returned, which may match several
    elements: selectors are a heuristic, not a guarantee.
    """
    query = FILTER_SELECTORS.get(filter_type)
    if query is None:
        log.error("Unsupported filter type", {"filterType": filter_type})
        return []

    log.debug("Starting extraction", {"filterType": filter_type})
    try:
        raw = await page.evaluate(_EXTRACT_ELEMENTS_JS, [filter_type, query, max_depth])
    except Exception as exc:
        log.error("Failed to extract elements", {"error": errors.get_error_message(exc)})
        return []

    elements = parse_extracted_elements(raw, filter_type)
    log.debug("Extraction finished", {"filterType": filter_type, "count": len(elements)})
    return elements
