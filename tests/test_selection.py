"""Tests for cutlist.selection — the sparse deselection map."""

from cutlist.selection import SelectionSet


class TestSelectionSet:
    def test_everything_selected_by_default(self, make_store):
        s = make_store([(0, 1), (2, 3)])
        sel = SelectionSet(s)
        assert sel.selected_ids() == [x.id for x in s]
        assert sel.deselected == {}

    def test_new_segments_start_selected(self, make_store):
        s = make_store([(0, 1)])
        sel = SelectionSet(s)
        sel.deselect_all()
        new = s.add_segment(5)
        assert sel.is_selected(new.id)
        assert sel.selected_ids() == [new.id]

    def test_toggle(self, make_store):
        s = make_store([(0, 1), (2, 3)])
        sel = SelectionSet(s)
        target = s[0].id
        sel.toggle(target)
        assert not sel.is_selected(target)
        sel.toggle(target)
        assert sel.is_selected(target)

    def test_select_only(self, make_store):
        s = make_store([(0, 1), (2, 3), (4, 5)])
        sel = SelectionSet(s)
        sel.select_only(s[1].id)
        assert sel.selected_ids() == [s[1].id]

    def test_select_all_clears_map(self, make_store):
        s = make_store([(0, 1), (2, 3)])
        sel = SelectionSet(s)
        sel.deselect_all()
        assert sel.selected_ids() == []
        sel.select_all()
        assert sel.deselected == {}

    def test_deselected_is_a_copy(self, make_store):
        s = make_store([(0, 1)])
        sel = SelectionSet(s)
        sel.deselected[s[0].id] = True
        assert sel.is_selected(s[0].id)

    def test_selected_segments_from_given_list(self, make_store):
        s = make_store([(0, 1), (2, 3)])
        sel = SelectionSet(s)
        sel.toggle(s[0].id)
        apparent = s.apparent_segments()
        assert [x.id for x in sel.selected_segments(apparent)] == [s[1].id]


class TestSelectByLabel:
    def _labelled(self, make_store, names):
        s = make_store([(i, i + 1) for i in range(len(names))])
        for segment, name in zip(s.segments, names):
            if name:
                s.label_segments([segment.id], name)
        return s

    def test_marks_matching_selected(self, make_store):
        s = self._labelled(make_store, ["a", "b", "a"])
        sel = SelectionSet(s)
        sel.deselect_all()
        assert sel.select_by_label("a") == 2
        assert sel.selected_ids() == [s[0].id, s[2].id]
        assert sel.deselected[s[0].id] is False

    def test_leaves_others_alone(self, make_store):
        s = self._labelled(make_store, ["a", "b", "c"])
        sel = SelectionSet(s)
        sel.toggle(s[2].id)
        sel.select_by_label("a")
        assert sel.is_selected(s[1].id)
        assert not sel.is_selected(s[2].id)

    def test_no_match_is_noop(self, make_store):
        s = self._labelled(make_store, ["a", "b"])
        sel = SelectionSet(s)
        sel.deselect_all()
        assert sel.select_by_label("zzz") == 0
        assert sel.selected_ids() == []

    def test_all_match_is_noop(self, make_store):
        s = self._labelled(make_store, ["a", "a"])
        sel = SelectionSet(s)
        sel.deselect_all()
        assert sel.select_by_label("a") == 0
        assert sel.selected_ids() == []

    def test_empty_label_matches_unnamed(self, make_store):
        s = self._labelled(make_store, ["a", ""])
        sel = SelectionSet(s)
        sel.deselect_all()
        assert sel.select_by_label("") == 1
        assert sel.selected_ids() == [s[1].id]
