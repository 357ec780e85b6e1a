from types import SimpleNamespace

from app.services.reconcile_service import options_to_sync, plan_children


def _item(id=None, order_index=0, **kw):
    return SimpleNamespace(id=id, order_index=order_index, **kw)


def test_plan_splits_updates_inserts_and_deletes():
    desired = [_item("a"), _item(None), _item("zzz"), _item("c")]
    plan = plan_children(desired, ["a", "b", "c"])
    assert plan.updates == ["a", "c"]
    assert len(plan.inserts) == 2
    assert plan.deletes == ["b"]


def test_plan_follows_order_index_then_submission_order():
    first, second, third = _item("a", 2), _item(None, 1), _item("b", 1)
    plan = plan_children([first, second, third], ["a", "b"])
    assert [item for _, item in plan.kept] == [second, third, first]


def test_plan_duplicate_id_is_inserted_once_more():
    plan = plan_children([_item("a"), _item("a")], ["a"])
    assert plan.updates == ["a"]
    assert len(plan.inserts) == 1
    assert plan.deletes == []


def test_plan_with_nothing_desired_deletes_everything():
    plan = plan_children([], ["a", "b"])
    assert plan.kept == []
    assert plan.deletes == ["a", "b"]


def test_options_to_sync_drops_blank_input_answers():
    q = SimpleNamespace(options=[SimpleNamespace(text="Paris"), SimpleNamespace(text="  "), SimpleNamespace(text="")])
    assert [o.text for o in options_to_sync("input", q)] == ["Paris"]
    assert len(options_to_sync("single", q)) == 3
