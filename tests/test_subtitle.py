"""Tests for subtitle history and session counters."""

from subtrans.session import SessionCounters
from subtrans.subtitle import SubtitleHistory


class TestSubtitleHistory:
    """Tests for SubtitleHistory."""

    def test_history_capped_oldest_evicted(self):
        history = SubtitleHistory(history_size=10)

        for i in range(15):
            history.commit(f"line {i}", f"linha {i}", now=float(i))

        entries = history.entries()
        assert len(entries) == 10
        assert entries[0].original_text == "line 5"
        assert entries[-1].original_text == "line 14"

    def test_current_expires_at_deadline(self):
        history = SubtitleHistory(display_secs=5.0)

        entry, display_until = history.commit("Hello", "Olá", now=100.0)

        assert display_until == 105.0
        assert history.current(104.9) == entry
        assert history.current(105.0) is None
        # History survives the display timeout
        assert len(history) == 1

    def test_newer_commit_restarts_timer(self):
        history = SubtitleHistory(display_secs=5.0)
        history.commit("Hello", "Olá", now=100.0)

        entry, _ = history.commit("Bye", "Tchau", now=103.0)

        assert history.current(106.0) == entry

    def test_visible_returns_last_lines_while_current(self):
        history = SubtitleHistory(display_secs=5.0)
        for i in range(5):
            history.commit(f"line {i}", f"linha {i}", now=100.0 + i)

        visible = history.visible(3, now=105.0)

        assert [e.translated_text for e in visible] == ["linha 2", "linha 3", "linha 4"]
        assert history.visible(3, now=200.0) == []

    def test_recent_pairs(self):
        history = SubtitleHistory()
        history.commit("a", "A", now=1.0)
        history.commit("b", "B", now=2.0)
        history.commit("c", "C", now=3.0)

        assert history.recent_pairs(2) == [("b", "B"), ("c", "C")]
        assert history.recent_pairs(0) == []

    def test_hide_keeps_history(self):
        history = SubtitleHistory()
        history.commit("Hello", "Olá", now=1.0)

        history.hide()

        assert history.current(1.5) is None
        assert len(history) == 1

    def test_configure_shrinks_history(self):
        history = SubtitleHistory(history_size=10)
        for i in range(8):
            history.commit(f"line {i}", f"linha {i}", now=float(i))

        history.configure(history_size=3)

        assert [e.original_text for e in history.entries()] == ["line 5", "line 6", "line 7"]


class TestSessionCounters:
    """Tests for SessionCounters."""

    def test_increment_and_reset(self):
        counters = SessionCounters()
        counters.increment("google")
        counters.increment("google")

        assert counters.get("google") == 2
        counters.reset()
        assert counters.snapshot() == {}

    def test_try_acquire_respects_limit(self):
        counters = SessionCounters()

        assert counters.try_acquire("openai", 2) is True
        assert counters.try_acquire("openai", 2) is True
        assert counters.try_acquire("openai", 2) is False
        assert counters.get("openai") == 2

    def test_zero_limit_is_unlimited(self):
        counters = SessionCounters()
        for _ in range(50):
            assert counters.try_acquire("openai", 0) is True
