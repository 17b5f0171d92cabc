from rich.console import Console

from build_resolver.errors import DuplicateLabelError
from build_resolver.label import Label
from build_resolver.models import FindResult, ImportSpec, Repo, ResolveResult
from build_resolver.tui.enums import UIStyle
from build_resolver.tui.sections import UISection
from build_resolver.tui.tables import FactsTable, IndexTable, MatchTable, ResolveTable


class ResolverConsoleUI:
    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def render_resolved(self, lang: str, imp: str, from_label: Label, label: Label) -> None:
        self.console.print(
            UISection.wrap(
                "resolved",
                FactsTable.grid(
                    [
                        ("Language", lang),
                        ("Import", imp),
                        ("From", str(from_label)),
                        ("Label", str(label)),
                    ]
                ),
                style=UIStyle.GREEN.value,
            )
        )

    def render_resolve_result(self, from_label: Label, result: ResolveResult) -> None:
        style = UIStyle.BLUE.value if result.is_valid() else UIStyle.YELLOW.value
        self.console.print(
            UISection.wrap(
                "rule overview", ResolveTable.summary_block(from_label, result), style=style
            )
        )
        if result.deps:
            self.console.print(
                UISection.wrap("deps", ResolveTable.deps_table(result), style=UIStyle.CYAN.value)
            )
        if result.errors:
            self.console.print(UISection.bullets("errors", result.errors, style=UIStyle.RED.value))
        if result.skipped:
            self.console.print(
                UISection.bullets("skipped", result.skipped, style=UIStyle.YELLOW.value)
            )

    def render_index(
        self,
        entries: list[tuple[ImportSpec, FindResult, str]],
        errors: list[DuplicateLabelError],
    ) -> None:
        if entries:
            self.console.print(
                UISection.wrap(
                    "import index",
                    IndexTable.entries_table(entries),
                    subtitle=f"{len(entries)} entries",
                )
            )
        else:
            self.console.print(UISection.note("import index", "No importable rules found."))
        if errors:
            self.console.print(UISection.bullets("errors", errors, style=UIStyle.RED.value))

    def render_facts(self, title: str, rows: list[tuple[str, str]]) -> None:
        self.console.print(UISection.wrap(title, FactsTable.grid(rows), style=UIStyle.CYAN.value))

    def render_repo(self, repo: Repo) -> None:
        self.render_facts(
            "repository",
            [
                ("Name", repo.name),
                ("Import path", repo.go_prefix),
                ("Remote", repo.remote),
                ("VCS", repo.vcs),
                ("Commit", repo.commit),
                ("Tag", repo.tag),
            ],
        )

    def render_matches(self, pattern: str, rows: list[tuple[str, bool]]) -> None:
        matched = sum(1 for _, ok in rows if ok)
        self.console.print(
            UISection.wrap(
                f"pattern {pattern}",
                MatchTable.results_table(rows),
                subtitle=f"{matched}/{len(rows)} matched",
            )
        )
