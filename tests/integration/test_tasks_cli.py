from agenda.core.models import Scope
from agenda.tasks import get_tasks
from tests.conftest import FnCLIRunner


def _only_task():
    tasks = get_tasks()
    assert len(tasks) == 1
    return tasks[0]


def test_add_and_list(tmp_agenda_dir, frozen_today):
    runner = FnCLIRunner()
    result = runner.invoke(["add", "buy", "milk", "--due", "tomorrow", "--at", "8:00"])
    assert result.exit_code == 0
    task = _only_task()
    assert f"□ buy milk [{task.id[:8]}]" in result.stdout
    assert task.due_time == "08:00"

    listed = runner.invoke(["ls"])
    assert listed.exit_code == 0
    assert f"□ 13/06 08:00· buy milk [{task.id[:8]}]" in listed.stdout


def test_ls_empty_and_all(tmp_agenda_dir):
    runner = FnCLIRunner()
    assert "no tasks" in runner.invoke(["ls"]).stdout
    runner.invoke(["add", "old", "chore"])
    runner.invoke(["done", "old", "chore"])
    assert "no tasks" in runner.invoke(["ls"]).stdout
    assert "✓ old chore" in runner.invoke(["ls", "--all"]).stdout


def test_add_week_and_month_goals(tmp_agenda_dir, frozen_today):
    runner = FnCLIRunner()
    assert runner.invoke(["add", "run", "3x", "--week", "this"]).exit_code == 0
    assert runner.invoke(["add", "read", "--month", "next"]).exit_code == 0
    by_title = {t.title: t for t in get_tasks()}
    assert by_title["run 3x"].scope == Scope.WEEK
    assert by_title["run 3x"].target_week == "2024-06-W3"
    assert by_title["read"].target_month == "2024-07"


def test_add_recurring_week_goal_is_anchored_at_week_start(tmp_agenda_dir, frozen_today):
    runner = FnCLIRunner()
    runner.invoke(["add", "plan", "meals", "--week", "2024-06-W4", "--every", "weekly"])
    task = _only_task()
    assert task.is_recurring
    assert task.due_date.isoformat() == "2024-06-16"


def test_add_usage_errors(tmp_agenda_dir, frozen_today):
    runner = FnCLIRunner()
    both = runner.invoke(["add", "x", "--due", "today", "--week", "this"])
    assert both.exit_code == 1
    assert "Use only one of" in both.stderr

    orphan = runner.invoke(["add", "x", "--interval", "2"])
    assert orphan.exit_code == 1
    assert "need --every" in orphan.stderr

    bad_pattern = runner.invoke(["add", "x", "--every", "hourly"])
    assert bad_pattern.exit_code == 1

    bad_week = runner.invoke(["add", "x", "--week", "2024-06-W9"])
    assert bad_week.exit_code == 1
    assert "Unknown week" in bad_week.stderr

    missing = runner.invoke(["add"])
    assert missing.exit_code == 1
    assert get_tasks() == []


def test_show_details(tmp_agenda_dir, frozen_today):
    runner = FnCLIRunner()
    runner.invoke(
        [
            "add", "water", "plants",
            "--due", "2024-06-10",
            "--every", "weekly",
            "--on", "mon,wed",
            "--desc", "balcony first",
            "--sub", "fill can", "feed",
        ]
    )
    result = runner.invoke(["show", "water"])
    assert result.exit_code == 0
    assert "  balcony first" in result.stdout
    assert "  due    2024-06-10" in result.stdout
    assert "  repeat every week on mon,wed" in result.stdout
    assert "    1. □ fill can" in result.stdout
    assert "    2. □ feed" in result.stdout


def test_done_recurring_reports_next(tmp_agenda_dir, frozen_today):
    runner = FnCLIRunner()
    runner.invoke(["add", "water", "plants", "--due", "2024-06-10", "--every", "weekly", "--on", "mon,wed"])
    result = runner.invoke(["done", "water", "plants"])
    assert result.exit_code == 0
    assert "✓ water plants" in result.stdout
    assert "next 2024-06-12" in result.stdout
    assert len(get_tasks()) == 2


def test_done_toggles_back(tmp_agenda_dir):
    runner = FnCLIRunner()
    runner.invoke(["add", "call", "mum"])
    runner.invoke(["done", "call", "mum"])
    result = runner.invoke(["done", "call", "mum"])
    assert result.stdout.startswith("□ call mum")
    assert _only_task().is_completed is False


def test_star(tmp_agenda_dir):
    runner = FnCLIRunner()
    runner.invoke(["add", "taxes"])
    assert runner.invoke(["star", "taxes"]).stdout.startswith("★ taxes")
    assert runner.invoke(["star", "taxes"]).stdout.startswith("☆ taxes")


def test_rm_then_show_fails(tmp_agenda_dir):
    runner = FnCLIRunner()
    runner.invoke(["add", "test", "done", "flag"])
    runner.invoke(["done", "test", "done", "flag"])

    rm_result = runner.invoke(["rm", "test", "done", "flag"])
    assert rm_result.exit_code == 0
    assert "✗ test done flag" in rm_result.stdout

    show_result = runner.invoke(["show", "test", "done", "flag"])
    assert show_result.exit_code == 1
    assert "No task found" in show_result.stderr


def test_ambiguous_ref(tmp_agenda_dir):
    runner = FnCLIRunner()
    runner.invoke(["add", "plan", "trip"])
    runner.invoke(["add", "plan", "party"])
    result = runner.invoke(["done", "plan"])
    assert result.exit_code == 1
    assert "ambiguous ref 'plan'" in result.stderr


def test_virtual_id_is_refused(tmp_agenda_dir):
    result = FnCLIRunner().invoke(["done", "virtual-abc-2024-06-12"])
    assert result.exit_code == 1
    assert "projected occurrence" in result.stderr


def test_move_to_date_week_and_month(tmp_agenda_dir, frozen_today):
    runner = FnCLIRunner()
    runner.invoke(["add", "buy", "milk"])

    dated = runner.invoke(["move", "tomorrow", "buy", "milk", "--at", "18:30"])
    assert dated.exit_code == 0
    assert dated.stdout.startswith("2024-06-13 buy milk")
    assert _only_task().due_time == "18:30"

    weekly = runner.invoke(["move", "next-week", "buy", "milk"])
    assert weekly.stdout.startswith("2024-06-W4 buy milk")
    task = _only_task()
    assert task.scope == Scope.WEEK
    assert task.due_date.isoformat() == "2024-06-13"

    monthly = runner.invoke(["move", "2024-08", "buy", "milk"])
    assert monthly.stdout.startswith("2024-08 buy milk")
    assert _only_task().target_week is None


def test_move_rejects_unknown_target(tmp_agenda_dir, frozen_today):
    runner = FnCLIRunner()
    runner.invoke(["add", "buy", "milk"])
    result = runner.invoke(["move", "someday", "buy", "milk"])
    assert result.exit_code == 1
    assert "Could not parse date" in result.stderr


def test_subtask_commands(tmp_agenda_dir):
    runner = FnCLIRunner()
    runner.invoke(["add", "move", "house"])
    assert runner.invoke(["sub", "add", "house", "pack", "boxes"]).exit_code == 0
    runner.invoke(["sub", "add", "house", "book", "van"])

    done = runner.invoke(["sub", "done", "house", "2"])
    assert done.exit_code == 0
    assert "✓ book van" in done.stdout

    out_of_range = runner.invoke(["sub", "done", "house", "5"])
    assert out_of_range.exit_code == 1

    runner.invoke(["sub", "rm", "house", "1"])
    assert [s.title for s in _only_task().subtasks] == ["book van"]
