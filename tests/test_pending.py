"""Tests for pending-create tracking."""

from es_fuse.pending import PendingCreateTracker


def test_mark_and_check():
    tracker = PendingCreateTracker()
    assert tracker.is_pending("/es1/logs/doc1.json") is False
    tracker.mark_created("/es1/logs/doc1.json")
    assert tracker.is_pending("/es1/logs/doc1.json") is True
    assert len(tracker) == 1


def test_mark_twice_is_one_entry():
    tracker = PendingCreateTracker()
    tracker.mark_created("/a/b/c.json")
    tracker.mark_created("/a/b/c.json")
    assert len(tracker) == 1


def test_discard():
    tracker = PendingCreateTracker()
    tracker.mark_created("/a/b/c.json")
    assert tracker.discard("/a/b/c.json") is True
    assert tracker.is_pending("/a/b/c.json") is False
    assert tracker.discard("/a/b/c.json") is False


def test_clear():
    tracker = PendingCreateTracker()
    tracker.mark_created("/a/b/c.json")
    tracker.mark_created("/a/b/d.json")
    tracker.clear()
    assert len(tracker) == 0
