"""Platform tab: services, registry components and templates."""

from __future__ import annotations

from rich.console import Group, RenderableType
from rich.layout import Layout
from rich.markdown import Markdown
from rich.table import Table
from rich.text import Text

from lazypulumi.state import PLATFORM_VIEWS, AppState, PlatformView
from lazypulumi.tui.render.common import ListView, ScrollView, dim, pane
from lazypulumi.tui.theme import ACCENT_CYAN, ACCENT_LAVENDER, DIM


def _view_strip(current: PlatformView) -> Text:
    strip = Text()
    for number, view in enumerate(PLATFORM_VIEWS, start=1):
        label = f" [{number}] {view.value} "
        if view is current:
            strip.append(label, style=f"bold reverse {ACCENT_LAVENDER}")
        else:
            strip.append(label, style=DIM)
        strip.append(" ")
    return strip


def _facts(*rows: tuple[str, str | None]) -> Table:
    grid = Table.grid(padding=(0, 2))
    grid.add_column(style=DIM)
    grid.add_column()
    for label, value in rows:
        if value:
            grid.add_row(label, value)
    return grid


def _services(state: AppState) -> tuple[list[Text], int | None, RenderableType]:
    rows = [Text(s.name) for s in state.services]
    service = state.services.selected
    if service is None:
        return rows, None, dim("No services")
    detail = Group(
        Text(service.name, style=f"bold {ACCENT_CYAN}"),
        _facts(
            ("Owner", service.owner),
            ("Items", service.item_count()),
            ("Created", service.created_at),
        ),
        Text(""),
        Text(service.description or "No description"),
    )
    return rows, state.services.selected_index, detail


def _components(state: AppState) -> tuple[list[Text], int | None, RenderableType]:
    rows = []
    for pkg in state.packages:
        row = Text(pkg.display_name)
        if pkg.publisher:
            row.append(f"  {pkg.publisher}", style=DIM)
        rows.append(row)
    pkg = state.selected_package
    if pkg is None:
        return rows, None, dim("No components")
    if pkg.readme_content:
        body: RenderableType = Markdown(pkg.readme_content)
    elif pkg.readme_url:
        body = dim("Loading README...")
    else:
        body = Text(pkg.description or "No description")
    detail = Group(
        Text(pkg.display_name, style=f"bold {ACCENT_CYAN}"),
        _facts(
            ("Package", pkg.key()),
            ("Version", pkg.version),
            ("Repository", pkg.repository_url),
        ),
        Text(""),
        body,
    )
    return rows, state.packages.selected_index, ScrollView(detail, state.description_scroll)


def _templates(state: AppState) -> tuple[list[Text], int | None, RenderableType]:
    rows = []
    for template in state.templates:
        row = Text(template.display)
        if template.language:
            row.append(f"  {template.language}", style=DIM)
        rows.append(row)
    template = state.templates.selected
    if template is None:
        return rows, None, dim("No templates")
    detail = Group(
        Text(template.display, style=f"bold {ACCENT_CYAN}"),
        _facts(
            ("Template", template.full_name()),
            ("Version", template.version),
            ("Language", template.language),
            ("Runtime", template.runtime_name),
        ),
        Text(""),
        Markdown(template.description or "No description"),
    )
    return rows, state.templates.selected_index, ScrollView(detail, state.description_scroll)


def render_platform(state: AppState) -> RenderableType:
    build = {
        PlatformView.SERVICES: _services,
        PlatformView.COMPONENTS: _components,
        PlatformView.TEMPLATES: _templates,
    }[state.platform_view]
    rows, selected, detail = build(state)

    body = Layout()
    body.split_row(
        Layout(pane(ListView(rows, selected), f"{state.platform_view.value} ({len(rows)})",
                    focused=True), ratio=2),
        Layout(pane(detail, "Details"), ratio=3),
    )
    root = Layout()
    root.split_column(Layout(_view_strip(state.platform_view), size=1), body)
    return root
