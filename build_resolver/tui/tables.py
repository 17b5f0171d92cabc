from rich.table import Column, Table
from rich.text import Text

from build_resolver.label import Label
from build_resolver.models import FindResult, ImportSpec, ResolveResult
from build_resolver.tui.enums import LANG_STYLE, UIStyle


class FactsTable:
    @staticmethod
    def grid(rows: list[tuple[str, str]]) -> Table:
        table = Table.grid(padding=(0, 2))
        table.add_column(style="bold")
        table.add_column()
        for key, value in rows:
            table.add_row(key, Text(value or "-"))
        return table


class IndexTable:
    @staticmethod
    def entries_table(entries: list[tuple[ImportSpec, FindResult, str]]) -> Table:
        table = Table(
            Column(header="Lang", width=6),
            Column(header="Import", overflow="fold"),
            Column(header="Rule", overflow="fold"),
            Column(header="Provider", width=8),
            Column(header="Vendor root", overflow="ellipsis"),
            expand=True,
            header_style="bold",
        )
        for imp, result, lang in entries:
            style = LANG_STYLE.get(imp.lang, UIStyle.WHITE.value)
            provider = Text(lang, style=LANG_STYLE.get(lang, UIStyle.WHITE.value))
            vendor_root = (result.vendor_root or "(root)") if result.vendored else ""
            table.add_row(
                Text(imp.lang, style=style),
                Text(imp.imp),
                Text(str(result.label)),
                provider,
                Text(vendor_root, style=UIStyle.DIM.value),
            )
        return table


class ResolveTable:
    @staticmethod
    def summary_block(from_label: Label, result: ResolveResult) -> Table:
        summary = result.summary()
        table = Table.grid(padding=(0, 2))
        table.add_column(style="bold")
        table.add_column()
        table.add_row("Rule", Text(str(from_label)))
        table.add_row("Deps", str(summary["deps"]))
        table.add_row("Errors", str(summary["errors"]))
        table.add_row("Skipped", str(summary["skipped"]))
        return table

    @staticmethod
    def deps_table(result: ResolveResult) -> Table:
        table = Table(Column(header="Dependency", overflow="fold"), expand=True, header_style="bold")
        for dep in result.deps:
            style = UIStyle.GREEN.value if dep.repo else UIStyle.WHITE.value
            table.add_row(Text(str(dep), style=style))
        return table


class MatchTable:
    @staticmethod
    def results_table(rows: list[tuple[str, bool]]) -> Table:
        table = Table(
            Column(header="Label", overflow="fold"),
            Column(header="Match", width=6),
            expand=True,
            header_style="bold",
        )
        for label, matched in rows:
            if matched:
                status = f"[{UIStyle.GREEN.value}]yes[/{UIStyle.GREEN.value}]"
            else:
                status = f"[{UIStyle.DIM.value}]no[/{UIStyle.DIM.value}]"
            table.add_row(Text(label), status)
        return table
