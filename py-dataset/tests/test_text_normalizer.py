"""
Tests for conservative text normalization.
"""

import pytest

from processors.text_normalizer import normalize, normalize_text


IDEMPOTENCE_SAMPLES = [
    "",
    "   ",
    "текст ,далее",
    "Решение от 12.03.2021 г. в 10:30 ,см. п.5",
    "a…b",
    "1…2",
    "т.е.далее",
    "«Кавычки» и „лапки“ — тире – дефис",
    "x \xad",
    "word\xad\nnext",
    "a\u00a0,b",
    "строка\r\nстрока\rстрока",
    "\tотступ\t",
    "a\n\n\n\n\nb",
    "a\n \n\t\n \nb",
    "ﬁnal ﬂow ©2023 ®™ • пункт",
    "1,5 и 2.75 ,а также 3 ;4",
    "Вопрос?Ответ!Итог.",
    "двойной  пробел внутри",
    "\x00\x07управляющие\x1f символы\x7f\x85",
    "... начало",
    "конец …",
    "1...2",
]


class TestPipeline:
    """Each normalization step in isolation."""

    def test_punctuation_repair(self):
        assert normalize_text("текст ,далее") == "текст, далее"

    def test_space_before_punctuation_removed(self):
        assert normalize_text("истец , ответчик ; суд .") == "истец, ответчик; суд."

    def test_space_after_punctuation_inserted(self):
        assert normalize_text("Суд решил:иск удовлетворить.Истец") == "Суд решил: иск удовлетворить. Истец"

    @pytest.mark.parametrize("text", ["12.03.2021", "10:30", "1,5", "3.14159", "п. 1.2.3"])
    def test_numbers_keep_separators(self, text):
        assert normalize_text(text) == text

    def test_punctuation_before_number_after_word(self):
        assert normalize_text("п.5") == "п. 5"

    def test_punctuation_at_line_start_stays_on_its_line(self):
        assert normalize_text("первая\n, вторая") == "первая\n, вторая"

    def test_blank_line_collapse(self):
        assert normalize_text("a\n\n\n\n\nb") == "a\n\nb"

    def test_whitespace_only_lines_count_as_blank(self):
        assert normalize_text("a\n  \n\t\n \nb") == "a\n\nb"

    def test_single_blank_line_kept(self):
        assert normalize_text("a\n\nb") == "a\n\nb"

    def test_line_endings(self):
        assert normalize_text("a\r\nb\rc") == "a\nb\nc"

    def test_tabs_become_spaces(self):
        assert normalize_text("a\tb") == "a b"

    def test_lines_and_document_trimmed(self):
        assert normalize_text("\n\n  first  \n   second\t\n\n") == "first\nsecond"

    def test_control_characters_removed(self):
        assert normalize_text("a\x00b\x08c\x0bd\x0ce\x1ff\x7fg\x9fh") == "abcdefgh"

    def test_soft_hyphen_removed(self):
        assert normalize_text("пере\xadнос") == "перенос"

    def test_internal_spacing_untouched(self):
        assert normalize_text("слово  слово   слово") == "слово  слово   слово"

    def test_split_tokens_not_merged(self):
        assert normalize_text("р е ш е н и е") == "р е ш е н и е"


class TestSubstitutions:
    """Typographic character table."""

    @pytest.mark.parametrize("source, expected", [
        ("ﬁ", "fi"),
        ("ﬂ", "fl"),
        ("ﬀ", "ff"),
        ("ﬃ", "ffi"),
        ("ﬄ", "ffl"),
        ("a—b", "a-b"),
        ("a–b", "a-b"),
        ("«дело»", '"дело"'),
        ("„дело“", '"дело"'),
        ("“quote”", '"quote"'),
        ("‘single’", "'single'"),
        ("конец…", "конец..."),
        ("• пункт", "- пункт"),
        ("©", "(c)"),
        ("®", "(R)"),
        ("™", "(TM)"),
        ("a\u00a0b", "a b"),
    ])
    def test_table(self, source, expected):
        assert normalize_text(source) == expected


class TestContract:
    """Totality and idempotence."""

    @pytest.mark.parametrize("value", [None, ""])
    def test_empty_input(self, value):
        assert normalize_text(value) == ""
        assert normalize(value) == ""

    def test_alias(self):
        assert normalize is normalize_text

    @pytest.mark.parametrize("text", IDEMPOTENCE_SAMPLES)
    def test_idempotent(self, text):
        once = normalize_text(text)
        assert normalize_text(once) == once

    def test_text_without_punctuation_unchanged(self):
        assert normalize_text("Иванов подал") == "Иванов подал"
