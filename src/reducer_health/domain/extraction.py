"""Fact extraction: lexical scan of one feature reducer source into a FeatureFact.

No full parse. Comments and string literals are masked out first, then
declaration boundaries are found by brace matching and declarations are
recognised by keyword/attribute patterns. Partial or invalid sources still
produce a fact-sheet; a source with neither a State nor an Action declaration
raises ParseSkipped.
"""

from __future__ import annotations

import re
from pathlib import PurePath

from reducer_health.domain.constants import (
    FRAMEWORK_TYPE_NAMES,
    UNCONTROLLED_EFFECT_PATTERNS,
    VAGUE_METHOD_SUFFIXES,
    VAGUE_METHOD_VERBS,
)
from reducer_health.domain.entities import FeatureFact, SourceUnit
from reducer_health.domain.errors import ParseSkipped

_REDUCER_ATTRIBUTE = re.compile(
    r"@Reducer\b(?:\([^)]*\))?\s+"
    r"(?:(?:public|internal|package|private|fileprivate|final)\s+)*"
    r"(?:struct|enum|class)\s+(\w+)"
)
_REDUCER_CONFORMANCE = re.compile(
    r"\b(?:struct|class|enum)\s+(\w+)\s*(?:<[^>{]*>)?\s*:[^{]*?\b(?:Reducer|ReducerProtocol)\b"
)
_TYPE_DECLARATION = re.compile(r"\b(?:struct|class|enum|extension|actor)\s+(\w+)")
_STATE_DECLARATION = re.compile(r"\b(?:struct|class)\s+State\b")
_ACTION_DECLARATION = re.compile(r"\benum\s+Action\b")
_DEPENDENCY_ISOLATED = re.compile(
    r"(?:@DependencyClient\b[^{]*|"
    r"\b(?:extension|struct|enum|class)\s+\w+\s*:[^{]*\b(?:DependencyKey|TestDependencyKey)\b[^{]*)"
)

_MODIFIERS = (
    r"(?:(?:public|private|fileprivate|internal|package|open|static|class|lazy|weak|"
    r"unowned|nonisolated|final|override|mutating)(?:\(set\))?\s+)*"
)
_PROPERTY_DECLARATION = re.compile(
    r"(?m)^[ \t]*((?:@\w+(?:\([ \t]*\))?\s+)*" + _MODIFIERS + r")(var|let)\s+([^\n]*)"
)
_ATTRIBUTE_ARGUMENTS = re.compile(r"@\w+\(")
_CASE_DECLARATION = re.compile(r"(?m)^[ \t]*(?:indirect\s+)?case\s+([^\n]*)")
_SWITCH_LABEL = re.compile(r"(?m)^[ \t]*(?:case\b|default\b|@unknown\s+default\b)")
_SWITCH = re.compile(r"\bswitch\b")
_FUNC = re.compile(r"\bfunc\s+`?(\w+)")
_DEPENDENCY_KEYPATH = re.compile(r"@Dependency\s*\(\s*\\\s*\.\s*(\w+)")
_DEPENDENCY_TYPE = re.compile(r"@Dependency\s*\(\s*(\w+(?:\s*\.\s*\w+)*?)\s*\.\s*self\s*\)")
_COMPOSITION_OPERATOR = re.compile(r"(?:\bScope\s*\(|\.ifLet\s*\(|\.forEach\s*\()")
_FEATURE_CALL = re.compile(r"\b([A-Z]\w*)\s*\(\s*\)")
_FEATURE_TYPE_REFERENCE = re.compile(
    r"\b([A-Z]\w*)\s*\.\s*(?:State|Action)\b|\bStoreOf\s*<\s*([A-Z]\w*)\s*>"
)
_LEADING_NAME = re.compile(r"\s*`?(\w+)`?\s*(?::|=|\(|$)")
_TRIVIAL_HANDLERS: frozenset[str] = frozenset({"", "return .none", "break", "fallthrough"})


class SwiftLexer:
    """Tolerant lexical helpers over Swift source text. All offsets are preserved."""

    @staticmethod
    def mask(text: str, keep_strings: bool = False) -> str:
        """
        Blank comment bodies (and string literal contents unless keep_strings).

        Newlines survive so line structure and offsets are unchanged.
        Unterminated comments or strings run to the end of the text.
        """
        out = list(text)
        n = len(text)

        def blank(start: int, end: int) -> None:
            for k in range(start, min(end, n)):
                if out[k] != "\n":
                    out[k] = " "

        i = 0
        while i < n:
            if text.startswith("//", i):
                end = text.find("\n", i)
                end = n if end == -1 else end
                blank(i, end)
                i = end
            elif text.startswith("/*", i):
                depth, j = 1, i + 2
                while j < n and depth:
                    if text.startswith("/*", j):
                        depth, j = depth + 1, j + 2
                    elif text.startswith("*/", j):
                        depth, j = depth - 1, j + 2
                    else:
                        j += 1
                blank(i, j)
                i = j
            elif text.startswith('"""', i):
                end = text.find('"""', i + 3)
                end = n if end == -1 else end
                if not keep_strings:
                    blank(i + 3, end)
                i = end + 3
            elif text[i] == '"':
                j = i + 1
                while j < n and text[j] not in '"\n':
                    j += 2 if text[j] == "\\" else 1
                end = min(j, n)
                if not keep_strings:
                    blank(i + 1, end)
                i = end + 1 if end < n and text[end] == '"' else end
            else:
                i += 1
        return "".join(out)

    @staticmethod
    def matching(text: str, open_index: int, opener: str = "{", closer: str = "}") -> int:
        """Index of the bracket closing the one at open_index, or len(text) if unbalanced."""
        depth = 0
        for k in range(open_index, len(text)):
            ch = text[k]
            if ch == opener:
                depth += 1
            elif ch == closer:
                depth -= 1
                if depth == 0:
                    return k
        return len(text)

    @staticmethod
    def body_after(text: str, start: int) -> tuple[int, int] | None:
        """(open, close) of the first brace block at or after start, before any ';'."""
        for k in range(start, len(text)):
            ch = text[k]
            if ch == "{":
                return (k, SwiftLexer.matching(text, k))
            if ch == ";" or ch == "}":
                return None
        return None

    @staticmethod
    def top_level(body: str) -> str:
        """Blank everything nested inside braces; keep depth-0 text and newlines."""
        out: list[str] = []
        depth = 0
        for ch in body:
            if ch == "{":
                out.append("{" if depth == 0 else " ")
                depth += 1
            elif ch == "}":
                depth = max(0, depth - 1)
                out.append("}" if depth == 0 else " ")
            elif depth == 0 or ch == "\n":
                out.append(ch)
            else:
                out.append(" ")
        return "".join(out)

    @staticmethod
    def split_top_level_commas(text: str) -> list[str]:
        """Split on commas outside (), [] and <> (arrows are not brackets)."""
        pieces: list[str] = []
        depth = 0
        current: list[str] = []
        for k, ch in enumerate(text):
            if ch in "([<":
                depth += 1
            elif ch in ")]" or (ch == ">" and (k == 0 or text[k - 1] != "-")):
                depth = max(0, depth - 1)
            if ch == "," and depth == 0:
                pieces.append("".join(current))
                current = []
                continue
            current.append(ch)
        pieces.append("".join(current))
        return pieces

    @staticmethod
    def blank_attribute_arguments(text: str) -> str:
        """
        Blank the argument list of every `@Attribute(...)`, newlines included.

        Offsets are preserved, so an attribute with nested or multi-line
        arguments collapses onto the line of the declaration it annotates.
        An unbalanced argument list is left as is.
        """
        out = list(text)
        for match in _ATTRIBUTE_ARGUMENTS.finditer(text):
            open_paren = match.end() - 1
            close_paren = SwiftLexer.matching(text, open_paren, "(", ")")
            if close_paren == len(text):
                continue
            for k in range(open_paren + 1, close_paren):
                out[k] = " "
        return "".join(out)


class FactExtractor:
    """
    Produces exactly one FeatureFact per SourceUnit, or raises ParseSkipped.

    Stateless: identical text always yields an identical fact-sheet, so one
    instance can be shared across worker threads.
    """

    def extract(self, unit: SourceUnit) -> FeatureFact:
        """Scan one unit. Raises ParseSkipped when no State/Action declaration exists."""
        masked = SwiftLexer.mask(unit.text)
        comment_free = SwiftLexer.mask(unit.text, keep_strings=True)

        reducer = self._reducer_declaration(masked)
        search_range = (reducer[1], reducer[2]) if reducer else (0, len(masked))

        state_body = self._nested_body(masked, _STATE_DECLARATION, search_range)
        action_body = self._nested_body(masked, _ACTION_DECLARATION, search_range)
        if state_body is None and action_body is None:
            raise ParseSkipped(unit.path, "no State or Action declaration found")

        identifier, type_body = self._identify(unit, masked, reducer, state_body, action_body)

        state_properties: tuple[str, ...] = ()
        if state_body is not None:
            state_properties = tuple(
                name for name, _annotation, _attrs in self._stored_properties(masked, state_body)
            )
        actions: tuple[str, ...] = ()
        if action_body is not None:
            actions = self._action_cases(masked, action_body)

        closures = self._closure_properties(masked, type_body)
        isolated = self._dependency_isolated_ranges(masked)
        return FeatureFact(
            identifier=identifier,
            path=unit.path,
            state_properties=state_properties,
            actions=actions,
            closure_properties=closures,
            invoked_closures=self._invoked(masked, closures),
            dependencies=self._dependencies(masked),
            uncontrolled_effects=self._uncontrolled_effects(masked, isolated),
            children=self._children(masked, identifier),
            duplicate_handler_count=self._duplicate_handlers(masked, comment_free),
            vague_methods=self._vague_methods(masked),
        )

    # -- declarations -------------------------------------------------------

    def _reducer_declaration(self, masked: str) -> tuple[str, int, int] | None:
        """(name, open, close) of the reducer type: @Reducer first, then conformance."""
        for pattern in (_REDUCER_ATTRIBUTE, _REDUCER_CONFORMANCE):
            for match in pattern.finditer(masked):
                body = SwiftLexer.body_after(masked, match.end())
                if body is not None:
                    return (match.group(1), body[0], body[1])
        return None

    def _nested_body(
        self, masked: str, pattern: re.Pattern[str], search_range: tuple[int, int]
    ) -> tuple[int, int] | None:
        """Body of the first declaration matching pattern, preferring the reducer's own."""
        start, end = search_range
        fallback: tuple[int, int] | None = None
        for match in pattern.finditer(masked):
            body = SwiftLexer.body_after(masked, match.end())
            if body is None:
                continue
            if start <= match.start() <= end:
                return body
            if fallback is None:
                fallback = body
        return fallback

    def _identify(
        self,
        unit: SourceUnit,
        masked: str,
        reducer: tuple[str, int, int] | None,
        state_body: tuple[int, int] | None,
        action_body: tuple[int, int] | None,
    ) -> tuple[str, tuple[int, int] | None]:
        """Unit identifier and the body whose stored properties are inspected for closures."""
        if reducer is not None:
            return reducer[0], (reducer[1], reducer[2])
        anchor = (state_body or action_body)[0]  # type: ignore[index]
        enclosing = self._enclosing_type(masked, anchor)
        if enclosing is not None:
            return enclosing
        return PurePath(unit.path).stem or unit.path, None

    def _enclosing_type(
        self, masked: str, position: int
    ) -> tuple[str, tuple[int, int]] | None:
        """Innermost type (or extension) whose body contains position, excluding State/Action."""
        best: tuple[str, tuple[int, int]] | None = None
        for match in _TYPE_DECLARATION.finditer(masked, 0, position):
            name = match.group(1)
            if name in ("State", "Action"):
                continue
            body = SwiftLexer.body_after(masked, match.end())
            if body is None or not body[0] < position < body[1]:
                continue
            if best is None or body[0] > best[1][0]:
                best = (name, body)
        return best

    def _stored_properties(
        self, masked: str, body: tuple[int, int]
    ) -> list[tuple[str, str, str]]:
        """(name, annotation, attributes) of each depth-1 stored instance property."""
        open_index, close_index = body
        inner = masked[open_index + 1:close_index]
        top = SwiftLexer.blank_attribute_arguments(SwiftLexer.top_level(inner))
        found: list[tuple[str, str, str]] = []
        for match in _PROPERTY_DECLARATION.finditer(top):
            prefix, keyword, rest = match.group(1), match.group(2), match.group(3)
            if re.search(r"\b(?:static|class)\s", prefix):
                continue
            brace = rest.find("{")
            equals = rest.find("=")
            if keyword == "var" and brace != -1 and (equals == -1 or equals > brace):
                observed = inner[match.start(3) + brace:]
                close = SwiftLexer.matching(observed, 0)
                if not re.search(r"\b(?:willSet|didSet)\b", observed[:close]):
                    continue
            declaration = rest if brace == -1 else rest[:brace]
            for piece in SwiftLexer.split_top_level_commas(declaration):
                name_match = _LEADING_NAME.match(piece)
                if not name_match:
                    continue
                annotation = ""
                colon = piece.find(":")
                if colon != -1:
                    annotation = piece[colon + 1:]
                    assignment = self._top_level_equals(annotation)
                    if assignment != -1:
                        annotation = annotation[:assignment]
                found.append((name_match.group(1), annotation.strip(), prefix))
        return found

    @staticmethod
    def _top_level_equals(text: str) -> int:
        depth = 0
        for k, ch in enumerate(text):
            if ch in "([":
                depth += 1
            elif ch in ")]":
                depth -= 1
            elif ch == "=" and depth == 0 and not text.startswith("==", k):
                return k
        return -1

    def _action_cases(self, masked: str, body: tuple[int, int]) -> tuple[str, ...]:
        top = SwiftLexer.top_level(masked[body[0] + 1:body[1]])
        names: list[str] = []
        for match in _CASE_DECLARATION.finditer(top):
            for piece in SwiftLexer.split_top_level_commas(match.group(1)):
                name_match = _LEADING_NAME.match(piece)
                if name_match:
                    names.append(name_match.group(1))
        return tuple(names)

    # -- effects and dependencies -------------------------------------------

    def _closure_properties(
        self, masked: str, type_body: tuple[int, int] | None
    ) -> tuple[str, ...]:
        """Stored properties of the reducer type annotated with a function type."""
        if type_body is None:
            return ()
        names: list[str] = []
        for name, annotation, attributes in self._stored_properties(masked, type_body):
            if "@Dependency" in attributes:
                continue
            if "->" in annotation:
                names.append(name)
        return tuple(names)

    def _invoked(self, masked: str, closures: tuple[str, ...]) -> tuple[str, ...]:
        """Closure properties called somewhere in the unit (they sit on an effect path)."""
        invoked: list[str] = []
        for name in closures:
            call = re.compile(
                r"(?<!func )(?<!case )(?:(?<![\w.])|(?<=self\.))"
                + re.escape(name)
                + r"\s*\??\s*\("
            )
            if call.search(masked):
                invoked.append(name)
        return tuple(invoked)

    def _dependencies(self, masked: str) -> tuple[str, ...]:
        found: list[tuple[int, str]] = []
        for match in _DEPENDENCY_KEYPATH.finditer(masked):
            found.append((match.start(), match.group(1)))
        for match in _DEPENDENCY_TYPE.finditer(masked):
            found.append((match.start(), re.sub(r"\s+", "", match.group(1))))
        return tuple(name for _pos, name in sorted(found))

    def _dependency_isolated_ranges(self, masked: str) -> list[tuple[int, int]]:
        """Bodies of dependency clients and keys, where live implementations may touch globals."""
        ranges: list[tuple[int, int]] = []
        for match in _DEPENDENCY_ISOLATED.finditer(masked):
            body = SwiftLexer.body_after(masked, match.end())
            if body is not None:
                ranges.append(body)
        return ranges

    def _uncontrolled_effects(
        self, masked: str, isolated: list[tuple[int, int]]
    ) -> tuple[str, ...]:
        found: list[tuple[int, str]] = []
        for label, pattern in UNCONTROLLED_EFFECT_PATTERNS.items():
            for match in re.finditer(pattern, masked):
                position = match.start()
                if any(start < position < end for start, end in isolated):
                    continue
                found.append((position, label))
        return tuple(label for _pos, label in sorted(found))

    # -- composition --------------------------------------------------------

    def _children(self, masked: str, identifier: str) -> tuple[str, ...]:
        """Sorted unique child feature names referenced by composition operators and types."""
        declared = {m.group(1) for m in _TYPE_DECLARATION.finditer(masked)}
        excluded = declared | FRAMEWORK_TYPE_NAMES | {identifier, "Self"}
        names: set[str] = set()
        for match in _COMPOSITION_OPERATOR.finditer(masked):
            close_paren = SwiftLexer.matching(masked, match.end() - 1, "(", ")")
            after = close_paren + 1
            while after < len(masked) and masked[after].isspace():
                after += 1
            if after >= len(masked) or masked[after] != "{":
                continue
            closure = masked[after + 1:SwiftLexer.matching(masked, after)]
            names.update(m.group(1) for m in _FEATURE_CALL.finditer(closure))
        for match in _FEATURE_TYPE_REFERENCE.finditer(masked):
            names.add(match.group(1) or match.group(2))
        return tuple(sorted(names - excluded))

    # -- organisation -------------------------------------------------------

    def _duplicate_handlers(self, masked: str, comment_free: str) -> int:
        """Number of non-trivial switch handler blocks identical to an earlier one."""
        seen: set[str] = set()
        duplicates = 0
        for match in _SWITCH.finditer(masked):
            body = SwiftLexer.body_after(masked, match.end())
            if body is None:
                continue
            open_index, close_index = body
            top = SwiftLexer.top_level(masked[open_index + 1:close_index])
            raw = comment_free[open_index + 1:close_index]
            labels = [m.start() for m in _SWITCH_LABEL.finditer(top)]
            for index, label in enumerate(labels):
                end = labels[index + 1] if index + 1 < len(labels) else len(top)
                colon = self._label_colon(top, label, end)
                if colon == -1:
                    continue
                block = raw[colon + 1:end]
                statements = [s for s in re.split(r"[\n;]", block) if s.strip()]
                normalized = " ".join(block.split())
                if len(statements) < 2 or normalized in _TRIVIAL_HANDLERS:
                    continue
                if normalized in seen:
                    duplicates += 1
                else:
                    seen.add(normalized)
        return duplicates

    @staticmethod
    def _label_colon(top: str, start: int, end: int) -> int:
        """Colon ending a `case ...:` label (outside parentheses), or -1."""
        depth = 0
        for k in range(start, end):
            ch = top[k]
            if ch in "([":
                depth += 1
            elif ch in ")]":
                depth -= 1
            elif ch == ":" and depth == 0:
                return k
        return -1

    def _vague_methods(self, masked: str) -> tuple[str, ...]:
        vague: list[str] = []
        for match in _FUNC.finditer(masked):
            name = match.group(1)
            lowered = name.lower()
            for verb in VAGUE_METHOD_VERBS:
                if lowered.startswith(verb) and lowered[len(verb):] in VAGUE_METHOD_SUFFIXES:
                    vague.append(name)
                    break
        return tuple(vague)
