"""Unit tests for fact extraction: SwiftLexer helpers and FactExtractor."""

import unittest

from reducer_health.domain.entities import SourceUnit
from reducer_health.domain.errors import ParseSkipped
from reducer_health.domain.extraction import FactExtractor, SwiftLexer

COUNTER_FEATURE = """\
import ComposableArchitecture

@Reducer
struct CounterFeature {
  @ObservableState
  struct State: Equatable {
    var count = 0
    var isLoading = false
    // var commentedOut = 1
    var fact: String?
    static let maxCount = 10
    var doubled: Int { count * 2 }
  }

  enum Action {
    case incrementButtonTapped
    case decrementButtonTapped
    case factButtonTapped
    case factResponse(String)
  }

  @Dependency(\\.numberFact) var numberFact

  var body: some ReducerOf<Self> {
    Reduce { state, action in
      switch action {
      case .incrementButtonTapped:
        state.count += 1
        return .none
      case .decrementButtonTapped:
        state.count -= 1
        return .none
      case .factButtonTapped:
        state.isLoading = true
        return .run { [count = state.count] send in
          try await send(.factResponse(self.numberFact.fetch(count)))
        }
      case let .factResponse(fact):
        state.isLoading = false
        state.fact = fact
        return .none
      }
    }
  }
}
"""

LEGACY_FEATURE = """\
import ComposableArchitecture
import Foundation

struct LegacyFeature: Reducer {
  struct State: Equatable {
    var items: [String] = []
    var lastRefresh: Date?
    var child: ChildFeature.State?
  }

  enum Action {
    case refresh, refreshAgain, pullToRefresh
    case loaded([String])
    case child(ChildFeature.Action)
  }

  var fetchItems: () async throws -> [String]
  var log: (String) -> Void = { _ in }

  var body: some ReducerOf<Self> {
    Reduce { state, action in
      switch action {
      case .refresh:
        state.lastRefresh = Date()
        return .run { send in await send(.loaded(try await fetchItems())) }
      case .refreshAgain:
        state.lastRefresh = Date()
        return .run { send in await send(.loaded(try await fetchItems())) }
      case .pullToRefresh:
        state.lastRefresh = Date()
        return .run { send in await send(.loaded(try await fetchItems())) }
      case let .loaded(items):
        state.items = items
        return .none
      case .child:
        return .none
      }
    }
    .ifLet(\\.child, action: \\.child) {
      ChildFeature()
    }
  }

  func handleData() {}
  func processStuff() {}
  func loadItems() {}
}
"""


class TestSwiftLexer(unittest.TestCase):
    """Test the offset-preserving lexical helpers."""

    def test_mask_blanks_comments_and_strings_but_keeps_offsets(self) -> None:
        text = 'let a = "struct State" // enum Action\n/* var x */ let b = 1\n'
        masked = SwiftLexer.mask(text)
        self.assertEqual(len(masked), len(text))
        self.assertEqual(masked.count("\n"), 2)
        self.assertNotIn("State", masked)
        self.assertNotIn("Action", masked)
        self.assertNotIn("var x", masked)
        self.assertIn("let b = 1", masked)

    def test_mask_keep_strings_only_blanks_comments(self) -> None:
        text = 'let a = "hello" // note\n'
        masked = SwiftLexer.mask(text, keep_strings=True)
        self.assertIn('"hello"', masked)
        self.assertNotIn("note", masked)

    def test_mask_handles_nested_block_comments(self) -> None:
        text = "/* outer /* inner */ still comment */ let x = 1"
        masked = SwiftLexer.mask(text)
        self.assertNotIn("still", masked)
        self.assertIn("let x = 1", masked)

    def test_matching_finds_closing_brace(self) -> None:
        text = "{ a { b } c }"
        self.assertEqual(SwiftLexer.matching(text, 0), len(text) - 1)

    def test_matching_unbalanced_returns_length(self) -> None:
        text = "{ a { b }"
        self.assertEqual(SwiftLexer.matching(text, 0), len(text))

    def test_body_after_stops_at_semicolon(self) -> None:
        self.assertIsNone(SwiftLexer.body_after("struct A; { }", 0))
        self.assertEqual(SwiftLexer.body_after("struct A { }", 0), (9, 11))

    def test_top_level_blanks_nested_content(self) -> None:
        self.assertEqual(SwiftLexer.top_level("a { b { c } } d"), "a {         } d")

    def test_blank_attribute_arguments_handles_nesting_and_newlines(self) -> None:
        text = '@Shared(.file(.docs.appending(component: "x"),\n  x)) var items\n@MainActor func go()'
        blanked = SwiftLexer.blank_attribute_arguments(text)
        self.assertEqual(len(blanked), len(text))
        self.assertTrue(blanked.startswith("@Shared(" + " " * (text.index(") var") - 8) + ") var items\n"))
        self.assertTrue(blanked.endswith("@MainActor func go()"))

    def test_blank_attribute_arguments_leaves_unbalanced_list(self) -> None:
        self.assertEqual(SwiftLexer.blank_attribute_arguments("@Shared(.a(b) var x"), "@Shared(.a(b) var x")

    def test_split_top_level_commas_respects_brackets(self) -> None:
        pieces = SwiftLexer.split_top_level_commas("a: (Int, Int) -> Void, b: [String: Int]")
        self.assertEqual(pieces, ["a: (Int, Int) -> Void", " b: [String: Int]"])


class TestFactExtractor(unittest.TestCase):
    """Test FactExtractor on realistic feature reducers."""

    def setUp(self) -> None:
        self.extractor = FactExtractor()

    def test_well_formed_feature(self) -> None:
        """A modern reducer: stored state only, injected dependency, no issues."""
        fact = self.extractor.extract(SourceUnit("Counter/CounterFeature.swift", COUNTER_FEATURE))

        self.assertEqual(fact.identifier, "CounterFeature")
        self.assertEqual(fact.path, "Counter/CounterFeature.swift")
        self.assertEqual(fact.state_properties, ("count", "isLoading", "fact"))
        self.assertEqual(
            fact.actions,
            ("incrementButtonTapped", "decrementButtonTapped", "factButtonTapped", "factResponse"),
        )
        self.assertEqual(fact.dependencies, ("numberFact",))
        self.assertEqual(fact.closure_properties, ())
        self.assertEqual(fact.uncontrolled_effects, ())
        self.assertEqual(fact.children, ())
        self.assertEqual(fact.duplicate_handler_count, 0)
        self.assertEqual(fact.vague_methods, ())

    def test_legacy_feature_counts_every_smell(self) -> None:
        fact = self.extractor.extract(SourceUnit("LegacyFeature.swift", LEGACY_FEATURE))

        self.assertEqual(fact.identifier, "LegacyFeature")
        self.assertEqual(fact.state_properties, ("items", "lastRefresh", "child"))
        self.assertEqual(
            fact.actions, ("refresh", "refreshAgain", "pullToRefresh", "loaded", "child"))
        self.assertEqual(fact.closure_properties, ("fetchItems", "log"))
        self.assertEqual(fact.invoked_closures, ("fetchItems",))
        self.assertEqual(fact.dependencies, ())
        self.assertEqual(fact.uncontrolled_effects, ("Date()", "Date()", "Date()"))
        self.assertEqual(fact.children, ("ChildFeature",))
        self.assertEqual(fact.duplicate_handler_count, 2)
        self.assertEqual(fact.vague_methods, ("handleData", "processStuff"))

    def test_extraction_is_deterministic(self) -> None:
        unit = SourceUnit("LegacyFeature.swift", LEGACY_FEATURE)
        self.assertEqual(self.extractor.extract(unit), self.extractor.extract(unit))

    def test_non_reducer_is_skipped(self) -> None:
        source = 'import SwiftUI\n\nstruct ContentView: View {\n  var body: some View { Text("struct State {}") }\n}\n'
        with self.assertRaises(ParseSkipped) as ctx:
            self.extractor.extract(SourceUnit("ContentView.swift", source))
        self.assertEqual(ctx.exception.path, "ContentView.swift")
        self.assertIn("State or Action", ctx.exception.reason)

    def test_commented_out_declarations_do_not_count(self) -> None:
        source = "// struct State {\n//   var x = 1\n// }\n/* enum Action { case a } */\n"
        with self.assertRaises(ParseSkipped):
            self.extractor.extract(SourceUnit("Dead.swift", source))

    def test_extension_declared_state_uses_enclosing_type(self) -> None:
        source = (
            "extension SettingsFeature {\n"
            "  struct State {\n"
            "    var volume = 5\n"
            "  }\n"
            "  enum Action {\n"
            "    case volumeChanged(Int)\n"
            "  }\n"
            "}\n"
        )
        fact = self.extractor.extract(SourceUnit("SettingsFeature+State.swift", source))
        self.assertEqual(fact.identifier, "SettingsFeature")
        self.assertEqual(fact.state_properties, ("volume",))
        self.assertEqual(fact.actions, ("volumeChanged",))

    def test_bare_state_falls_back_to_file_stem(self) -> None:
        source = "struct State {\n  var a = 1\n  var b = 2\n}\n"
        fact = self.extractor.extract(SourceUnit("Features/Orphan.swift", source))
        self.assertEqual(fact.identifier, "Orphan")
        self.assertEqual(fact.actions, ())
        self.assertEqual(fact.state_properties, ("a", "b"))

    def test_observed_properties_are_stored(self) -> None:
        source = (
            "@Reducer\n"
            "struct Player {\n"
            "  struct State {\n"
            "    var volume = 0 {\n"
            "      didSet { clamp() }\n"
            "    }\n"
            "    var muted: Bool { volume == 0 }\n"
            "  }\n"
            "  enum Action { case tick }\n"
            "}\n"
        )
        fact = self.extractor.extract(SourceUnit("Player.swift", source))
        self.assertEqual(fact.state_properties, ("volume",))

    def test_deeply_nested_attribute_arguments_keep_the_property(self) -> None:
        source = (
            "@Reducer\n"
            "struct Inbox {\n"
            "  struct State {\n"
            '    @Shared(.fileStorage(.documentsDirectory.appending(component: "x"))) var items: [Int] = []\n'
            "    @Presents(\n"
            "      wrapping(.init(a: 1))\n"
            "    ) var detail: Detail.State?\n"
            "    var b = 2\n"
            "  }\n"
            "  enum Action { case refresh }\n"
            "}\n"
        )
        fact = self.extractor.extract(SourceUnit("Inbox.swift", source))
        self.assertEqual(fact.state_properties, ("items", "detail", "b"))

    def test_dependency_clients_do_not_count_as_uncontrolled_effects(self) -> None:
        source = (
            "@Reducer\n"
            "struct Clock {\n"
            "  struct State {\n"
            "    var now: Date?\n"
            "  }\n"
            "  enum Action { case tick }\n"
            "  @Dependency(\\.date) var date\n"
            "  @Dependency(UUIDGenerator.self) var uuid\n"
            "}\n"
            "\n"
            "extension DateClient: DependencyKey {\n"
            "  static let liveValue = DateClient { Date() }\n"
            "}\n"
        )
        fact = self.extractor.extract(SourceUnit("Clock.swift", source))
        self.assertEqual(fact.dependencies, ("date", "UUIDGenerator"))
        self.assertEqual(fact.uncontrolled_effects, ())

    def test_dependency_annotated_closure_is_not_a_closure_property(self) -> None:
        source = (
            "@Reducer\n"
            "struct Search {\n"
            "  struct State {}\n"
            "  enum Action { case query(String) }\n"
            "  @Dependency(\\.search) var search: (String) async -> [String]\n"
            "}\n"
        )
        fact = self.extractor.extract(SourceUnit("Search.swift", source))
        self.assertEqual(fact.closure_properties, ())
        self.assertEqual(fact.dependencies, ("search",))

    def test_scope_and_foreach_children_exclude_framework_names(self) -> None:
        source = (
            "@Reducer\n"
            "struct AppFeature {\n"
            "  struct State {\n"
            "    var rows: IdentifiedArrayOf<RowFeature.State> = []\n"
            "  }\n"
            "  enum Action {\n"
            "    case tab(TabFeature.Action)\n"
            "    case rows(IdentifiedActionOf<RowFeature>)\n"
            "  }\n"
            "  var body: some ReducerOf<Self> {\n"
            "    Scope(state: \\.tab, action: \\.tab) {\n"
            "      TabFeature()\n"
            "    }\n"
            "    Reduce { state, action in\n"
            "      return .none\n"
            "    }\n"
            "    .forEach(\\.rows, action: \\.rows) {\n"
            "      RowFeature()\n"
            "    }\n"
            "  }\n"
            "}\n"
        )
        fact = self.extractor.extract(SourceUnit("AppFeature.swift", source))
        self.assertEqual(fact.children, ("RowFeature", "TabFeature"))
