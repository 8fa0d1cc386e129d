# pylint: disable=missing-module-docstring,missing-function-docstring

from orchestrator.counting import (
    CountState,
    occurrences,
    on_delta,
    on_stop,
    on_turn_complete,
    reported_count,
    trim_display,
)


KW = "practice"


def test_turn_scenario_counts_each_occurrence_once() -> None:
    state = CountState()

    state = on_delta(state, "I practice ")
    assert reported_count(state, KW) == 1

    state = on_delta(state, "daily practice")
    assert reported_count(state, KW) == 2

    state = on_turn_complete(state, KW)
    assert state == CountState(committed=2, turn_buffer="")
    assert reported_count(state, KW) == 2

    state = on_delta(state, "more practice")
    assert reported_count(state, KW) == 3

    state = on_turn_complete(state, KW)
    assert state.committed == 3


def test_split_keyword_across_turn_boundary_example() -> None:
    state = CountState()
    for text in ("I like to prac", "tice daily. ", "Practice makes perfect."):
        state = on_delta(state, text)
    assert reported_count(state, KW) == 2

    state = on_turn_complete(state, KW)
    assert state.committed == 2
    assert reported_count(state, KW) == 2

    state = on_turn_complete(on_delta(state, "practice"), KW)
    assert state.committed == 3


def test_stop_mid_turn_commits_open_turn() -> None:
    state = on_delta(CountState(), "practice practice")
    assert reported_count(state, KW) == 2

    state = on_stop(state, KW)

    assert state == CountState(committed=2, turn_buffer="")
    assert reported_count(state, KW) == 2


def test_keyword_split_across_deltas_is_found() -> None:
    state = on_delta(CountState(), "we prac")
    assert reported_count(state, KW) == 0

    state = on_delta(state, "tice now")

    assert reported_count(state, KW) == 1


def test_turn_complete_on_empty_turn_is_noop() -> None:
    state = CountState(committed=4)

    assert on_turn_complete(state, KW) == state


def test_empty_delta_leaves_state_unchanged() -> None:
    state = CountState(committed=1, turn_buffer="x")

    assert on_delta(state, "") is state


def test_matching_is_case_insensitive_whole_word() -> None:
    assert occurrences("Practice, PRACTICE! practiced practices", KW) == 2
    assert occurrences("malpractice", KW) == 0
    assert occurrences("", KW) == 0
    assert occurrences("practice", "") == 0


def test_keyword_with_regex_metacharacters() -> None:
    assert occurrences("a.b and axb", "a.b") == 1


def test_keyword_with_non_word_edges() -> None:
    assert occurrences("I love c++ a lot", "c++") == 1
    assert occurrences("try c++ today, C++ rocks", "c++") == 2
    assert occurrences("c# is ok", "c#") == 1
    assert occurrences("abc++ and c++x", "c++") == 0


def test_non_word_edge_keyword_is_counted_per_turn() -> None:
    state = on_delta(CountState(), "I write c")
    state = on_delta(state, "++ daily")

    assert reported_count(state, "c++") == 1
    assert on_turn_complete(state, "c++").committed == 1


def test_trim_display_keeps_tail() -> None:
    assert trim_display("abc", "def", 4) == "cdef"
    assert trim_display("", "hi", 300) == "hi"
    assert trim_display("abc", "def", 0) == ""
