from datetime import date

import pytest

from taskclient.config import EngineSettings
from taskclient.engine import (
    TaskListEngine,
    add_task,
    clear_completed,
    delete_task,
    edit_task,
    reorder_tasks,
    toggle_task,
    validate_title,
)
from taskclient.errors import NotFoundError, PersistenceError, ValidationError
from taskclient.schemas import DueStatus, Priority, TaskEvent, ValidationMode, ViewOptions


def _engine(store, **settings):
    ids = iter(f'id-{n}' for n in range(1, 1000))
    clock = iter(float(n) for n in range(100, 1000))
    eng = TaskListEngine(store, EngineSettings(**settings), clock=lambda: next(clock), id_factory=lambda: next(ids))
    eng.load()
    return eng


# ---- pure functions ----

def test_add_to_empty_list():
    tasks = add_task((), 'Buy milk', priority='high', now=5.0, id_factory=lambda: 'a')
    assert len(tasks) == 1
    t = tasks[0]
    assert t.title == 'Buy milk'
    assert t.priority == Priority.HIGH
    assert t.completed is False
    assert t.created_at == 5.0
    assert t.order == 1


def test_add_appends_with_next_order(make_task):
    existing = (make_task(order=4), make_task(order=7))
    tasks = add_task(existing, '  walk dog  ')
    assert len(tasks) == 3
    assert tasks[-1].title == 'walk dog'
    assert tasks[-1].order == 8
    assert tasks[-1].priority == Priority.MEDIUM
    assert tasks[:2] == existing


@pytest.mark.parametrize('title,reason', [
    ('', 'title required'),
    ('   ', 'title required'),
    (None, 'title required'),
    (' ab ', 'too short'),
    ('x' * 51, 'too long'),
    ('BUY MILK', 'duplicate'),
])
def test_add_rejects_invalid_titles(make_task, title, reason):
    existing = (make_task('Buy milk'),)
    with pytest.raises(ValidationError) as exc:
        add_task(existing, title)
    assert str(exc.value) == reason


def test_title_length_bounds_are_inclusive():
    assert validate_title('abc', ()) == 'abc'
    assert validate_title('y' * 50, ()) == 'y' * 50


def test_minimal_mode_only_requires_a_title(make_task):
    existing = (make_task('ab'),)
    assert validate_title('ab', existing, ValidationMode.MINIMAL) == 'ab'
    with pytest.raises(ValidationError):
        validate_title(' ', existing, ValidationMode.MINIMAL)


def test_add_rejects_unknown_priority():
    with pytest.raises(ValidationError) as exc:
        add_task((), 'valid title', priority='urgent')
    assert str(exc.value) == 'invalid priority'


def test_toggle_is_its_own_inverse(make_task):
    tasks = (make_task(), make_task(priority='low', due_date='2030-01-02'), make_task())
    once = toggle_task(tasks, 't2')
    assert once[1].completed is True
    # completing keeps priority and due date
    assert once[1].priority == Priority.LOW
    assert once[1].due_date == tasks[1].due_date
    assert toggle_task(once, 't2') == tasks


def test_toggle_unknown_id_raises(make_task):
    with pytest.raises(NotFoundError):
        toggle_task((make_task(),), 'nope')


def test_edit_trims_and_ignores_blank(make_task):
    tasks = (make_task('old title'),)
    assert edit_task(tasks, 't1', '  new title ')[0].title == 'new title'
    assert edit_task(tasks, 't1', '   ') == tasks


def test_delete_then_delete_again(make_task):
    tasks = (make_task(), make_task())
    once = delete_task(tasks, 't1')
    assert [t.id for t in once] == ['t2']
    with pytest.raises(NotFoundError):
        delete_task(once, 't1')


def test_clear_completed_keeps_active(make_task):
    tasks = (make_task(completed=True), make_task(completed=False))
    assert clear_completed(tasks) == (tasks[1],)


def test_reorder_moves_into_target_slot_and_renumbers(make_task):
    tasks = tuple(make_task(order=n * 10) for n in range(1, 5))  # t1..t4
    moved = reorder_tasks(tasks, 't1', 't3')
    assert [t.id for t in moved] == ['t2', 't3', 't1', 't4']
    assert [t.order for t in moved] == [1, 2, 3, 4]
    moved_up = reorder_tasks(tasks, 't4', 't2')
    assert [t.id for t in moved_up] == ['t1', 't4', 't2', 't3']


def test_reorder_back_restores_relative_order(make_task):
    tasks = tuple(make_task() for _ in range(5))
    there = reorder_tasks(tasks, 't2', 't4')
    back = reorder_tasks(there, 't4', 't2')
    ids = [t.id for t in back]
    assert ids.index('t2') < ids.index('t4')


def test_reorder_noops(make_task):
    tasks = (make_task(), make_task())
    assert reorder_tasks(tasks, 't1', 't1') == tasks
    assert reorder_tasks(tasks, 't1', 'missing') == tasks
    assert reorder_tasks(tasks, 'missing', 't1') == tasks


# ---- engine, snapshot mode ----

def test_engine_add_saves_and_reports_created(fake_store):
    eng = _engine(fake_store)
    res = eng.add('Buy milk', priority='high')
    assert res.ok and res.event == TaskEvent.CREATED
    assert res.task_id == 'id-1'
    assert fake_store.saved == list(eng.tasks)
    assert eng.tasks[0].created_at == 100.0


def test_engine_rejection_leaves_collection_unchanged(fake_store):
    eng = _engine(fake_store)
    eng.add('Buy milk')
    before = eng.tasks
    res = eng.add('buy MILK')
    assert res.ok is False
    assert res.message == 'duplicate'
    assert eng.tasks == before
    assert fake_store.save_calls == 1


def test_engine_not_found_is_a_benign_noop(fake_store):
    eng = _engine(fake_store)
    res = eng.toggle('ghost')
    assert res.ok is True and res.event is None
    assert res.message == 'not found'
    assert eng.delete('ghost').event is None
    assert fake_store.save_calls == 0


def test_engine_delete_twice_is_idempotent(fake_store):
    eng = _engine(fake_store)
    task_id = eng.add('Buy milk').task_id
    assert eng.delete(task_id).event == TaskEvent.DELETED
    second = eng.delete(task_id)
    assert second.event is None
    assert eng.tasks == ()


def test_engine_blank_edit_is_discarded(fake_store):
    eng = _engine(fake_store)
    task_id = eng.add('Buy milk').task_id
    res = eng.edit(task_id, '  ')
    assert res.event is None
    assert eng.tasks[0].title == 'Buy milk'
    assert eng.edit(task_id, 'Buy oat milk').event == TaskEvent.UPDATED
    assert eng.tasks[0].title == 'Buy oat milk'


def test_engine_clear_completed(fake_store):
    eng = _engine(fake_store)
    first = eng.add('first task').task_id
    eng.add('second task')
    eng.toggle(first)
    res = eng.clear_completed()
    assert res.event == TaskEvent.CLEARED
    assert [t.title for t in eng.tasks] == ['second task']
    assert eng.clear_completed().event is None


def test_engine_reorder_persists_new_order(fake_store):
    eng = _engine(fake_store)
    ids = [eng.add(title).task_id for title in ('one task', 'two task', 'three task')]
    res = eng.reorder(ids[2], ids[0])
    assert res.event == TaskEvent.REORDERED
    assert [t.title for t in fake_store.saved] == ['three task', 'one task', 'two task']
    assert [t.order for t in fake_store.saved] == [1, 2, 3]


def test_engine_load_failure_starts_empty(fake_store):
    fake_store.fail_load = True
    eng = _engine(fake_store)
    assert eng.tasks == ()


def test_engine_save_failure_is_reported_and_keeps_new_state(fake_store):
    eng = _engine(fake_store)
    eng.add('Buy milk')
    fake_store.fail_save = True
    with pytest.raises(PersistenceError):
        eng.add('Walk the dog')
    # in-memory state moved on; durable state did not
    assert [t.title for t in eng.tasks] == ['Buy milk', 'Walk the dog']
    assert [t.title for t in fake_store.saved] == ['Buy milk']


def test_engine_save_failure_rolls_back_when_configured(fake_store):
    eng = _engine(fake_store, rollback_on_save_failure=True)
    eng.add('Buy milk')
    fake_store.fail_save = True
    with pytest.raises(PersistenceError):
        eng.add('Walk the dog')
    assert [t.title for t in eng.tasks] == ['Buy milk']


def test_engine_undo_restores_one_step(fake_store):
    eng = _engine(fake_store)
    task_id = eng.add('Buy milk').task_id
    eng.delete(task_id)
    res = eng.undo()
    assert res.event == TaskEvent.RESTORED
    assert [t.id for t in eng.tasks] == [task_id]
    assert fake_store.saved == list(eng.tasks)
    # only the most recent change can be undone
    assert eng.undo().event is None
    assert len(eng.tasks) == 1


def test_engine_view_includes_stats(fake_store):
    eng = _engine(fake_store)
    first = eng.add('first task').task_id
    eng.add('second task')
    eng.add('third task')
    eng.toggle(first)
    view = eng.view()
    assert view.stats.total == 3
    assert view.stats.completed == 1
    assert view.stats.active == 2
    assert view.stats.percent_complete == 33
    assert len(view.tasks) == 3


def test_add_after_unordered_snapshot_lands_last(fake_store, make_task):
    # browser snapshots carry no order
    fake_store.saved = [make_task('older one', id='a'), make_task('older two', id='b')]
    eng = _engine(fake_store)
    res = eng.add('newest task')
    assert [t.title for t in eng.view().tasks] == ['older one', 'older two', 'newest task']
    assert [t.order for t in eng.tasks] == [1, 2, 3]
    assert res.tasks[-1].order == 3


def test_engine_undo_after_failed_save_goes_back_one_step(fake_store):
    eng = _engine(fake_store)
    eng.add('first task')
    fake_store.fail_save = True
    with pytest.raises(PersistenceError):
        eng.add('second task')
    fake_store.fail_save = False
    assert eng.undo().event == TaskEvent.RESTORED
    assert [t.title for t in eng.tasks] == ['first task']
    assert [t.title for t in fake_store.saved] == ['first task']


def test_engine_view_reports_due_status(fake_store):
    eng = _engine(fake_store)
    late = eng.add('late task', due_date='2030-01-01').task_id
    soon = eng.add('soon task', due_date='2030-01-03').task_id
    plain = eng.add('plain task').task_id
    view = eng.view(today=date(2030, 1, 2))
    assert view.due == {late: DueStatus.OVERDUE, soon: DueStatus.UPCOMING, plain: DueStatus.NONE}
    done = eng.view(ViewOptions(status_filter='completed'), today=date(2030, 1, 2))
    assert done.due == {}
