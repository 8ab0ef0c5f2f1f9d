"""Default page documents seeded from templates and event data."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any

from eventpages.config import DEFAULT_BANNER_URL
from eventpages.schemas.page import ComponentNode, PageDocument, RootData
from eventpages.services.datetime_service import parse_datetime

logger = logging.getLogger(__name__)

DEFAULT_EVENT_TITLE = "Event Title"
DEFAULT_EVENT_DATE = "Jan 13, 2025"
DEFAULT_SUBTITLE = "Location | Date"

DEFAULT_KIND = "default"
BLANK_KIND = "blank"

TEMPLATE_NAMES: dict[str, str] = {
    DEFAULT_KIND: "Welcome",
    BLANK_KIND: "Page",
    "schedule": "Schedule",
    "sponsor": "Sponsors",
    "floor-plan": "Floor Plan",
    "lists": "Lists",
}


@dataclass(frozen=True)
class TemplateContext:
    """Event data a template is personalised with. Every field is optional."""

    event_name: str | None = None
    banner_url: str | None = None
    location: str | None = None
    start_date: str | None = None


def format_event_date(start_date: str | None) -> str:
    """Format an event start date as ``Jan 13, 2025``; unparseable input yields the default."""
    if not start_date:
        return DEFAULT_EVENT_DATE
    try:
        parsed = parse_datetime(start_date)
    except (ValueError, TypeError):
        logger.debug("Unparseable event start date %r", start_date)
        return DEFAULT_EVENT_DATE
    return f"{parsed.strftime('%b')} {parsed.day}, {parsed.year}"


def hero_subtitle(context: TemplateContext) -> str:
    event_date = format_event_date(context.start_date)
    if context.location:
        return f"{context.location} | {event_date}"
    return event_date or DEFAULT_SUBTITLE


def _node(node_type: str, **props: Any) -> ComponentNode:
    node_id = f"{node_type}-{uuid.uuid4()}"
    return ComponentNode(type=node_type, props={"id": node_id, **props}, id=node_id)


def _landing_nodes(context: TemplateContext, banner_url: str) -> list[ComponentNode]:
    event_name = context.event_name or DEFAULT_EVENT_TITLE
    return [
        _node(
            "HeroSection",
            title=event_name,
            subtitle=hero_subtitle(context),
            backgroundImage=context.banner_url or banner_url,
            buttonText="Register Now",
        ),
        _node("AboutSection", title=f"About {event_name}"),
        _node("SpeakersSection", title="Speakers"),
        _node("ScheduleSection", title="Schedule"),
        _node("PricingPlans", title="Tickets"),
        _node("FAQSection", title="Frequently Asked Questions"),
        _node("ContactFooter", eventName=event_name),
    ]


def _schedule_nodes(context: TemplateContext) -> list[ComponentNode]:
    return [_node("SchedulePage", title="Schedule", eventName=context.event_name or "")]


def _sponsor_nodes(context: TemplateContext) -> list[ComponentNode]:
    return [
        _node("Heading", text="Our Sponsors", level=1),
        _node("Sponsors", title="Sponsors"),
    ]


def _floor_plan_nodes(context: TemplateContext) -> list[ComponentNode]:
    return [
        _node("Heading", text="Floor Plan", level=1),
        _node("LocationFloorPlan", title="Floor Plan", location=context.location or ""),
    ]


def _list_nodes(context: TemplateContext) -> list[ComponentNode]:
    return [
        _node("Heading", text="Lists", level=1),
        _node("List", items=[]),
    ]


def generate(
    page_name: str,
    context: TemplateContext | None = None,
    kind: str = DEFAULT_KIND,
    *,
    banner_url: str = DEFAULT_BANNER_URL,
) -> PageDocument:
    """Produce the canonical default document for a page.

    Identical inputs produce identical documents apart from node ids, which
    are fresh on every call. Never raises; unknown kinds produce a blank page.
    """
    if context is None:
        context = TemplateContext()
    title = page_name.strip() or TEMPLATE_NAMES.get(kind, TEMPLATE_NAMES[BLANK_KIND])

    if kind == DEFAULT_KIND:
        content = _landing_nodes(context, banner_url)
    elif kind == "schedule":
        content = _schedule_nodes(context)
    elif kind == "sponsor":
        content = _sponsor_nodes(context)
    elif kind == "floor-plan":
        content = _floor_plan_nodes(context)
    elif kind == "lists":
        content = _list_nodes(context)
    else:
        if kind != BLANK_KIND:
            logger.warning("Unknown template kind %r, using a blank page", kind)
        content = []

    root_props: dict[str, Any] = {"title": title, "pageTitle": title}
    if kind != DEFAULT_KIND:
        root_props["pageType"] = kind if kind in TEMPLATE_NAMES else BLANK_KIND
    return PageDocument(content=content, root=RootData(props=root_props), zones={})


def apply_event_context(
    document: PageDocument, context: TemplateContext
) -> tuple[PageDocument, bool]:
    """Keep the first HeroSection in sync with the shared banner and event data.

    Returns the (possibly new) document and whether anything changed. The
    input document is never mutated.
    """
    hero_index = next(
        (index for index, node in enumerate(document.content) if node.type == "HeroSection"),
        None,
    )
    if hero_index is None:
        return document, False

    hero = document.content[hero_index]
    props = dict(hero.props)
    updates: dict[str, Any] = {}

    current_banner = props.get("backgroundImage")
    if context.banner_url and current_banner != context.banner_url:
        updates["backgroundImage"] = context.banner_url

    event_name = context.event_name or props.get("title") or DEFAULT_EVENT_TITLE
    if props.get("title") != event_name:
        updates["title"] = event_name

    subtitle = hero_subtitle(context)
    if props.get("subtitle") != subtitle:
        updates["subtitle"] = subtitle

    if not updates:
        return document, False

    props.update(updates)
    content = list(document.content)
    content[hero_index] = hero.model_copy(update={"props": props})
    return document.model_copy(update={"content": content}), True
