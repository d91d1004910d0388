import pytest

from app.core.exceptions import IrreversiblePatchError, PatchConflictError
from app.services.versioning.patch import (
    apply_patch,
    build_state,
    diff_states,
    invert_patch,
    make_path,
    parse_path,
    replay_forward,
    state_to_list,
    unwind_backward,
)


def section(key, title=None, text="body", status="generated"):
    return {
        "section_key": key,
        "title": title or f"Title {key}",
        "content": {"text": text},
        "sources": [],
        "status": status,
    }


@pytest.fixture
def v1():
    return build_state([section("M1"), section("M2"), section("M3")])


@pytest.fixture
def v2():
    return build_state([section("M1", text="edited"), section("M3"), section("M3_S1")])


class TestDiffStates:

    def test_identical_states_produce_empty_patch(self, v1):
        assert diff_states(v1, v1) == []

    def test_removes_then_replaces_then_adds(self, v1, v2):
        patch = diff_states(v1, v2)
        assert [op["op"] for op in patch] == ["remove", "replace", "add"]
        assert patch[0]["path"] == "/M2"
        assert patch[1] == {
            "op": "replace",
            "path": "/M1/content",
            "value": {"text": "edited"},
            "previous": {"text": "body"},
        }
        assert patch[2]["path"] == "/M3_S1"

    def test_deterministic(self, v1, v2):
        assert diff_states(v1, v2) == diff_states(dict(reversed(list(v1.items()))), v2)

    def test_version_one_is_the_whole_tree(self, v1):
        patch = diff_states({}, v1)
        assert [op["path"] for op in patch] == ["/M1", "/M2", "/M3"]
        assert all(op["op"] == "add" for op in patch)


class TestApplyPatch:

    def test_apply_diff_reproduces_target(self, v1, v2):
        assert apply_patch(v1, diff_states(v1, v2)) == v2

    def test_inverse_restores_source(self, v1, v2):
        patch = diff_states(v1, v2)
        assert apply_patch(v2, invert_patch(patch)) == v1

    def test_apply_does_not_mutate_input(self, v1, v2):
        snapshot = build_state(state_to_list(v1))
        apply_patch(v1, diff_states(v1, v2))
        assert v1 == snapshot

    def test_add_existing_section_conflicts(self, v1):
        with pytest.raises(PatchConflictError):
            apply_patch(v1, [{"op": "add", "path": "/M1", "value": section("M1")}])

    def test_remove_missing_section_conflicts(self, v1):
        with pytest.raises(PatchConflictError):
            apply_patch(v1, [{"op": "remove", "path": "/M9"}])

    def test_replace_with_stale_previous_conflicts(self, v1):
        operation = {"op": "replace", "path": "/M1/title", "value": "New", "previous": "Stale"}
        with pytest.raises(PatchConflictError):
            apply_patch(v1, [operation])

    def test_unknown_op_conflicts(self, v1):
        with pytest.raises(PatchConflictError):
            apply_patch(v1, [{"op": "move", "path": "/M1"}])

    def test_invalid_path_conflicts(self, v1):
        with pytest.raises(PatchConflictError):
            apply_patch(v1, [{"op": "replace", "path": "/M1/version", "value": 3}])


class TestInvert:

    def test_remove_without_previous_is_irreversible(self):
        with pytest.raises(IrreversiblePatchError):
            invert_patch([{"op": "remove", "path": "/M1"}])

    def test_replace_without_previous_is_irreversible(self):
        with pytest.raises(IrreversiblePatchError):
            invert_patch([{"op": "replace", "path": "/M1/title", "value": "x"}])


def test_paths_escape_separators():
    path = make_path("odd/key~1", "title")
    assert path == "/odd~1key~01/title"
    assert parse_path(path) == ("odd/key~1", "title")


def test_forward_and_backward_reconstruction_agree(v1, v2):
    v3 = build_state([section("M1", text="edited"), section("M3", status="approved"), section("M3_S1")])
    patches = [diff_states({}, v1), diff_states(v1, v2), diff_states(v2, v3)]

    assert replay_forward(patches) == v3
    assert replay_forward(patches[:2]) == v2
    assert unwind_backward(v3, [patches[2]]) == v2
    assert unwind_backward(v3, [patches[2], patches[1]]) == v1
