"""
Tests for geometric line and word reconstruction.
"""

import random

import pytest

from models.dataset_types import TextFragment
from processors.layout_reconstructor import (
    LayoutReconstructor,
    average_font_size,
    build_page,
    build_page_text,
    compute_page_geometry,
    estimate_width,
    join_pages,
    reconstruct_page,
)


def _non_whitespace(text: str) -> int:
    return sum(1 for char in text if not char.isspace())


class TestGeometry:
    """Per-page threshold derivation."""

    def test_average_font_size_uses_fragments_with_height(self, fragment):
        fragments = [fragment("a", 0, height=10), fragment("b", 10, height=14), fragment("c", 20, height=None)]
        assert average_font_size(fragments) == pytest.approx(12.0)

    def test_average_font_size_falls_back_to_default(self, fragment):
        fragments = [fragment("a", 0, height=None), fragment("b", 10, height=0)]
        assert average_font_size(fragments) == 12.0
        assert average_font_size(fragments, default_font_size=9.0) == 9.0

    def test_thresholds_scale_with_font_size(self, fragment):
        small = compute_page_geometry([fragment("a", 0, height=10)])
        large = compute_page_geometry([fragment("a", 0, height=20)])
        assert small.word_gap_threshold == pytest.approx(2.0)
        assert small.line_break_threshold == pytest.approx(4.0)
        assert large.word_gap_threshold == pytest.approx(2 * small.word_gap_threshold)
        assert large.line_break_threshold == pytest.approx(2 * small.line_break_threshold)

    def test_estimate_width_prefers_measured_width(self, fragment):
        assert estimate_width(fragment("abc", 0, width=17.5), 12.0) == 17.5

    def test_estimate_width_heuristic(self, fragment):
        assert estimate_width(fragment("abcd", 0, width=None), 10.0) == pytest.approx(4 * 10.0 * 0.6)
        assert estimate_width(fragment("ab", 0, width=0), 10.0) == pytest.approx(2 * 10.0 * 0.6)


class TestReconstruction:
    """Word-join, word-separation and line-break decisions."""

    def test_empty_page(self):
        assert reconstruct_page([]) == []

    def test_split_word_is_joined(self, fragment):
        fragments = [fragment("рассмотре", 0, width=50), fragment("л", 50.5, width=6)]
        assert reconstruct_page(fragments) == ["рассмотрел"]

    def test_overlapping_fragments_are_joined(self, fragment):
        fragments = [fragment("Арбит", 0, width=30), fragment("раж", 29.2, width=20)]
        assert reconstruct_page(fragments) == ["Арбитраж"]

    def test_word_gap_inserts_single_space(self, fragment):
        fragments = [fragment("истец", 0, width=40), fragment("ответчик", 46, width=50)]
        assert reconstruct_page(fragments) == ["истец ответчик"]

    def test_line_break_on_baseline_change(self, fragment):
        fragments = [fragment("первая", 0, y=700, width=40), fragment("вторая", 45, y=680, width=40)]
        assert reconstruct_page(fragments) == ["первая", "вторая"]

    def test_line_break_regardless_of_x(self, fragment):
        # Continues right where the previous fragment ended, but one line lower
        fragments = [fragment("конец", 0, y=700, width=40), fragment("строки", 40, y=685, width=40)]
        assert reconstruct_page(fragments) == ["конец", "строки"]

    def test_small_baseline_jitter_stays_on_line(self, fragment):
        fragments = [fragment("суд", 0, y=700, width=20), fragment("решил", 25, y=700.8, width=30)]
        assert reconstruct_page(fragments) == ["суд решил"]

    def test_carriage_return_on_same_baseline_starts_new_line(self, fragment):
        fragments = [fragment("справа", 300, y=700, width=40), fragment("слева", 10, y=700.5, width=30)]
        assert reconstruct_page(fragments) == ["справа", "слева"]

    def test_missing_geometry_uses_heuristics(self, fragment):
        fragments = [fragment("abc", 0, width=None, height=None), fragment("def", 30, width=None, height=None)]
        # default font 12: "abc" ends at 21.6, gap 8.4 > 2.4
        assert reconstruct_page(fragments) == ["abc def"]

    def test_blank_fragment_marks_word_boundary(self):
        fragments = [
            TextFragment(text="Иванов", x=0, y=100, width=60, height=14),
            TextFragment(text=" ", x=60, y=100),
            TextFragment(text="подал", x=75, y=100, width=50, height=14),
        ]
        assert reconstruct_page(fragments) == ["Иванов подал"]

    def test_blank_fragment_between_touching_fragments_still_separates(self, fragment):
        fragments = [fragment("one", 0, width=20), fragment(" ", 20, width=3), fragment("two", 23, width=20)]
        assert reconstruct_page(fragments) == ["one two"]

    def test_blank_fragments_never_reach_output(self, fragment):
        fragments = [fragment("  ", 0), fragment("\t", 10, y=50), fragment(" ", 20, y=20)]
        assert reconstruct_page(fragments) == []

    def test_blank_fragment_on_new_baseline_flushes_line(self, fragment):
        fragments = [fragment("верх", 0, y=700, width=30), fragment(" ", 0, y=680), fragment("низ", 5, y=680, width=20)]
        assert reconstruct_page(fragments) == ["верх", "низ"]

    def test_stray_blank_left_of_word_keeps_line(self, fragment):
        fragments = [fragment("Ива", 0, width=30), fragment(" ", -20, width=3), fragment("нов", 30, width=30)]
        assert reconstruct_page(fragments) == ["Иванов"]

    def test_blank_fragment_does_not_move_position(self, fragment):
        fragments = [fragment("дело", 100, width=30), fragment(" ", 0, y=300), fragment("№ 5", 130, width=20)]
        assert reconstruct_page(fragments) == ["дело№ 5"]

    def test_existing_whitespace_is_not_doubled(self, fragment):
        fragments = [fragment("дело ", 0, width=30), fragment("№", 40, width=10)]
        assert reconstruct_page(fragments) == ["дело №"]

    def test_input_is_not_mutated(self, fragment):
        fragments = [fragment("a", 0, width=5), fragment("b", 20, width=5)]
        snapshot = list(fragments)
        reconstruct_page(fragments)
        assert fragments == snapshot

    def test_thresholds_follow_page_font_size(self):
        # The same 3-unit gap is a word break at 10pt and kerning at 20pt
        small = [TextFragment(text="ab", x=0, y=0, width=10, height=10),
                 TextFragment(text="cd", x=13, y=0, width=10, height=10)]
        large = [TextFragment(text="ab", x=0, y=0, width=10, height=20),
                 TextFragment(text="cd", x=13, y=0, width=10, height=20)]
        assert reconstruct_page(small) == ["ab cd"]
        assert reconstruct_page(large) == ["abcd"]

    def test_custom_ratios(self, fragment):
        fragments = [fragment("ab", 0, width=10), fragment("cd", 13, width=10)]
        assert LayoutReconstructor(word_gap_ratio=0.5).reconstruct(fragments) == ["abcd"]


class TestReconstructionProperties:
    """Determinism and completeness over generated pages."""

    @staticmethod
    def _random_page(seed: int):
        rng = random.Random(seed)
        words = ["суд", "истец", "ответчик", "решение", "дело", "№", "А40", "2023", "иск", "удовлетворить"]
        fragments = []
        y = 800.0
        for _ in range(rng.randint(1, 8)):
            x = 72.0
            for _ in range(rng.randint(1, 10)):
                text = rng.choice(words)
                width = len(text) * 6.0
                fragments.append(TextFragment(text=text, x=x, y=y, width=width, height=12.0))
                if rng.random() < 0.2:
                    fragments.append(TextFragment(text=" ", x=x + width, y=y))
                x += width + rng.choice([-0.5, 0.0, 0.3, 4.0, 8.0])
            y -= rng.choice([14.0, 16.0, 30.0])
        return fragments

    @pytest.mark.parametrize("seed", range(20))
    def test_deterministic(self, seed):
        fragments = self._random_page(seed)
        assert reconstruct_page(fragments) == reconstruct_page(fragments)

    @pytest.mark.parametrize("seed", range(20))
    def test_no_character_loss(self, seed):
        fragments = self._random_page(seed)
        lines = reconstruct_page(fragments)
        expected = sum(_non_whitespace(f.text) for f in fragments if not f.is_blank)
        assert sum(_non_whitespace(line) for line in lines) == expected

    @pytest.mark.parametrize("seed", range(20))
    def test_lines_have_no_blank_entries(self, seed):
        assert all(line.strip() for line in reconstruct_page(self._random_page(seed)))


class TestPageAssembly:
    """Page markers and document joining."""

    def test_page_text_has_marker_first(self):
        assert build_page_text(2, ["a", "b"]) == "--- СТРАНИЦА 2 ---\na\nb"

    def test_empty_page_keeps_marker(self):
        assert build_page_text(5, []) == "--- СТРАНИЦА 5 ---"

    def test_custom_marker_format(self):
        assert build_page_text(1, ["x"], marker_format="[page {page_num}]") == "[page 1]\nx"

    def test_join_pages_uses_blank_line(self):
        assert join_pages(["p1", "p2", "p3"]) == "p1\n\np2\n\np3"

    def test_build_page(self, fragment):
        page = build_page(1, [fragment("Иванов", 0, width=40), fragment("подал", 46, width=30)])
        assert page.page_num == 1
        assert page.lines == ["Иванов подал"]
        assert page.fragment_count == 2
        assert page.text == "--- СТРАНИЦА 1 ---\nИванов подал"
