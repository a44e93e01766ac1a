from types import SimpleNamespace

from app.services.answer_grader import grade_answer, is_answer_correct


def test_short_answer_accepts_substring_of_canonical():
    assert is_answer_correct("short_answer", "photosynthesis", "photo") is True
    assert is_answer_correct("short_answer", "photosynthesis", "phot synthesis") is False


def test_comparison_ignores_case_and_surrounding_whitespace():
    assert is_answer_correct("multiple_choice", "Chloroplast", "  chloroplast ") is True
    assert is_answer_correct("true_false", "True", "TRUE") is True
    assert is_answer_correct("fill_in_blank", "Chemical", " CHEM") is True


def test_choice_types_need_exact_match():
    assert is_answer_correct("multiple_choice", "Carbon dioxide", "carbon") is False
    assert is_answer_correct("true_false", "True", "Tru") is False


def test_unknown_type_uses_exact_match():
    assert is_answer_correct("essay", "mitosis", "mitosis") is True
    assert is_answer_correct("essay", "mitosis", "mito") is False


def test_blank_answer_is_never_correct():
    for qtype in ("multiple_choice", "true_false", "short_answer", "fill_in_blank"):
        assert is_answer_correct(qtype, "anything", "") is False
        assert is_answer_correct(qtype, "anything", "   ") is False
        assert is_answer_correct(qtype, "anything", None) is False


def test_grade_answer_awards_all_or_nothing():
    q = SimpleNamespace(question_type="multiple_choice", correct_answer="Chloroplast", points=4)

    ok = grade_answer(q, "chloroplast")
    assert ok.is_correct is True
    assert ok.points_awarded == 4.0

    miss = grade_answer(q, "Nucleus")
    assert miss.is_correct is False
    assert miss.points_awarded == 0.0
