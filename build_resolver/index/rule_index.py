"""Index of importable rules, built once and sealed before resolution."""

import logging
from dataclasses import dataclass, field
from typing import Iterable

from build_resolver.config import ResolverConfig
from build_resolver.constants import VENDOR_DIRNAME
from build_resolver.errors import (
    DuplicateLabelError,
    EmbedCycleError,
    GeneratedLabelConflictError,
    IndexNotFinishedError,
    IndexSealedError,
)
from build_resolver.interfaces import ILanguage
from build_resolver.label import Label
from build_resolver.models import BuildFile, FindResult, ImportSpec, Rule

logger = logging.getLogger(__name__)

_UNVISITED = 0
_VISITING = 1
_DONE = 2


@dataclass
class RuleRecord:
    rule: Rule
    label: Label
    build_file: BuildFile
    lang: str
    imported_as: list[ImportSpec]
    embeds: list[Label] = field(default_factory=list)
    embedded: bool = False
    generated: bool = False
    replaced: bool = False

    def to_find_result(self) -> FindResult:
        vendored, vendor_root = vendor_info(self.label)
        return FindResult(
            label=self.label,
            embeds=tuple(self.embeds),
            vendored=vendored,
            vendor_root=vendor_root,
        )


def vendor_info(label: Label) -> tuple[bool, str]:
    """Return whether label is vendored and the parent of its nearest vendor dir."""
    if label.repo:
        return False, ""
    parts = label.pkg.split("/")
    for i in range(len(parts) - 1, -1, -1):
        if parts[i] == VENDOR_DIRNAME:
            return True, "/".join(parts[:i])
    return False, ""


class RuleIndex:
    def __init__(self, config: ResolverConfig, languages: Iterable[ILanguage]) -> None:
        self.config = config
        self.languages = [lang for lang in languages if config.is_lang_enabled(lang.name)]
        self.errors: list[DuplicateLabelError] = []
        self._kind_map: dict[str, ILanguage] = {}
        for language in self.languages:
            for kind in language.kinds():
                self._kind_map.setdefault(kind, language)
        self._records: list[RuleRecord] = []
        self._label_map: dict[Label, RuleRecord] = {}
        self._import_map: dict[ImportSpec, list[RuleRecord]] = {}
        self._embedders: dict[Label, list[RuleRecord]] = {}
        self._finished = False

    @property
    def finished(self) -> bool:
        return self._finished

    def language_for_kind(self, kind: str) -> ILanguage | None:
        return self._kind_map.get(kind)

    def add_rules_from_file(self, build_file: BuildFile) -> None:
        for rule in build_file.rules:
            self.add_rule(rule, build_file)

    def add_generated_rules(self, pkg: str, rules: Iterable[Rule]) -> None:
        """Add rules produced in this pass; they replace on-disk rules with the same label."""
        build_file = BuildFile(pkg=pkg, rules=list(rules))
        for rule in build_file.rules:
            self.add_rule(rule, build_file, generated=True)

    def add_rule(self, rule: Rule, build_file: BuildFile, generated: bool = False) -> None:
        if self._finished:
            raise IndexSealedError()
        label = Label(pkg=build_file.pkg, name=rule.name)
        old = self._label_map.get(label)
        if old is not None:
            if old.generated and generated:
                raise GeneratedLabelConflictError(label)
            if not generated:
                if not old.generated:
                    error = DuplicateLabelError(label)
                    logger.warning("%s", error)
                    self.errors.append(error)
                return
            old.replaced = True

        language = self.language_for_kind(rule.kind)
        if language is None:
            return
        imports = language.imports(self.config, rule, build_file)
        if imports is None:
            return

        record = RuleRecord(
            rule=rule,
            label=label,
            build_file=build_file,
            lang=language.name,
            imported_as=list(imports),
            generated=generated,
        )
        self._records.append(record)
        self._label_map[label] = record

    def finish(self) -> None:
        if self._finished:
            return
        self._records = [record for record in self._records if not record.replaced]
        self._label_map = {record.label: record for record in self._records}
        direct = {
            record.label: self._direct_embeds(record) for record in self._records
        }
        state = {record.label: _UNVISITED for record in self._records}
        for record in self._records:
            if state[record.label] == _UNVISITED:
                self._collect_embeds(record, direct, state)
        self._build_import_map()
        self._finished = True
        logger.debug(
            "rule index finished: %d rules, %d import keys",
            len(self._records),
            len(self._import_map),
        )

    def _direct_embeds(self, record: RuleRecord) -> list[tuple[Label, RuleRecord | None]]:
        language = self.language_for_kind(record.rule.kind)
        labels = language.embeds(record.rule, record.label) if language else []
        return [(embed, self._label_map.get(embed)) for embed in labels]

    def _collect_embeds(
        self,
        start: RuleRecord,
        direct: dict[Label, list[tuple[Label, RuleRecord | None]]],
        state: dict[Label, int],
    ) -> None:
        # Post-order walk with an explicit stack; a record is merged only after
        # everything it embeds has been merged.
        stack: list[tuple[RuleRecord, int]] = [(start, 0)]
        state[start.label] = _VISITING
        while stack:
            record, position = stack[-1]
            children = direct[record.label]
            if position < len(children):
                stack[-1] = (record, position + 1)
                child = children[position][1]
                if child is None:
                    continue
                child_state = state[child.label]
                if child_state == _VISITING:
                    path = [item.label for item, _ in stack]
                    cycle = path[path.index(child.label):] + [child.label]
                    raise EmbedCycleError(cycle)
                if child_state == _UNVISITED:
                    state[child.label] = _VISITING
                    stack.append((child, 0))
                continue

            stack.pop()
            self._merge_embeds(record, children)
            state[record.label] = _DONE

    def _merge_embeds(
        self, record: RuleRecord, children: list[tuple[Label, RuleRecord | None]]
    ) -> None:
        record.embeds = [label for label, _ in children]
        for _, child in children:
            if child is None:
                continue
            self._embedders.setdefault(child.label, []).append(record)
            if child.lang == record.lang:
                child.embedded = True
                record.embeds.extend(child.embeds)
            record.imported_as.extend(child.imported_as)

    def _build_import_map(self) -> None:
        self._import_map = {}
        for record in self._records:
            if record.embedded:
                continue
            seen: set[ImportSpec] = set()
            for imp in record.imported_as:
                if imp in seen:
                    continue
                seen.add(imp)
                self._import_map.setdefault(imp, []).append(record)

    def find_rules_by_import(self, imp: ImportSpec, lang: str) -> list[FindResult]:
        if not self._finished:
            raise IndexNotFinishedError()
        return [
            record.to_find_result()
            for record in self._import_map.get(imp, [])
            if record.lang == lang
        ]

    def find_rule_by_label(self, label: Label, from_label: Label) -> FindResult | None:
        record = self._label_map.get(label.abs(from_label.repo, from_label.pkg))
        return record.to_find_result() if record else None

    def find_embedding_rule(self, label: Label, lang: str) -> FindResult | None:
        """Follow embedders upward to the top-most rule of lang embedding label."""
        if not self._finished:
            raise IndexNotFinishedError()
        current = self._label_map.get(label)
        if current is None:
            return None
        best: RuleRecord | None = None
        seen = {current.label}
        while True:
            parents = sorted(
                (
                    parent
                    for parent in self._embedders.get(current.label, [])
                    if parent.lang == lang and parent.label not in seen
                ),
                key=lambda item: str(item.label),
            )
            if not parents:
                break
            current = parents[0]
            seen.add(current.label)
            best = current
        return best.to_find_result() if best else None

    def entries(self) -> list[tuple[ImportSpec, FindResult, str]]:
        """All ``(import, rule, language)`` triples, sorted for display."""
        if not self._finished:
            raise IndexNotFinishedError()
        rows = [
            (imp, record.to_find_result(), record.lang)
            for imp, records in self._import_map.items()
            for record in records
        ]
        return sorted(rows, key=lambda row: (row[0].lang, row[0].imp, str(row[1].label)))
