"""Synonym equivalence classes for theme labels."""

from collections.abc import Iterable

from interest_engine.labels.normalizer import normalize_for_comparison

DEFAULT_SYNONYM_GROUPS: tuple[frozenset[str], ...] = (
    frozenset({"машинное обучение", "ml", "machine learning", "машинное обучение и"}),
    frozenset({"искусственный интеллект", "ai", "artificial intelligence", "ии"}),
    frozenset({"нейронные сети", "нейросети", "neural networks", "нейросеть"}),
    frozenset({"глубокое обучение", "deep learning", "глубокое обучение нейросетей"}),
    frozenset({"веб-разработка", "web development", "веб разработка"}),
    frozenset({"базы данных", "database", "база данных", "бд"}),
    frozenset({"python", "питон"}),
    frozenset({"javascript", "js", "ecmascript"}),
    frozenset({"react", "reactjs"}),
    frozenset({"node.js", "nodejs", "node"}),
)


class SynonymTable:
    """Many-to-one mapping of label variants onto equivalence classes.

    Membership is tested on the comparison form of a label, so
    "  Machine   Learning" and "ml" land in the same class. A label may
    belong to at most one class; if groups overlap, the later group wins.

    Usage:
        table = SynonymTable([{"k8s", "kubernetes"}])
        table.are_synonyms("K8S", "Kubernetes")  # True
    """

    def __init__(self, groups: Iterable[Iterable[str]] = DEFAULT_SYNONYM_GROUPS) -> None:
        self._class_of: dict[str, int] = {}
        self._groups: list[frozenset[str]] = []
        for group in groups:
            members = frozenset(
                normalize_for_comparison(label) for label in group
            ) - {""}
            if not members:
                continue
            index = len(self._groups)
            self._groups.append(members)
            for member in members:
                self._class_of[member] = index

    def __len__(self) -> int:
        return len(self._groups)

    def class_of(self, label: str) -> int | None:
        """Index of the equivalence class containing label, if any."""
        return self._class_of.get(normalize_for_comparison(label))

    def are_synonyms(self, first: str, second: str) -> bool:
        a = normalize_for_comparison(first)
        b = normalize_for_comparison(second)
        if a == b:
            return True
        index = self._class_of.get(a)
        return index is not None and index == self._class_of.get(b)

    def variants(self, label: str) -> frozenset[str]:
        """All members of the label's class, or an empty set."""
        index = self.class_of(label)
        if index is None:
            return frozenset()
        return self._groups[index]
