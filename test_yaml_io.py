"""Tests for project, report, calendar and throughput YAML files."""

from datetime import date

import pytest

from forecasts.errors import (
    CalendarDirectoryEmptyError,
    CalendarDirectoryNotFoundError,
    InvalidDateError,
    InvalidDateRangeError,
    InvalidStatusError,
    InvalidWeekdayError,
    MissingIssueIdError,
    MissingPreviousDependencyError,
    YamlParseError,
)
from forecasts.model import (
    IssueStatus,
    Project,
    ReferenceEstimate,
    StoryPointEstimate,
    ThreePointEstimate,
    Throughput,
    WorkItem,
)
from forecasts.reports import build_report
from forecasts.yaml_io import (
    dump_project,
    dump_report,
    dump_throughput,
    load_project,
    load_report,
    load_team_calendar_dir,
    load_throughput,
    parse_calendar,
    parse_project,
    parse_report,
    parse_throughput,
    save_project,
    save_report,
    save_throughput,
)


# ── Tier 2: Function Tests ─────────────────────────────────────────────────


class TestParseProject:
    def test_story_points(self):
        project = parse_project(
            "name: Demo\n"
            "work_packages:\n"
            "  - id: ABC-1\n"
            "    summary: First\n"
            "    estimate:\n"
            "      type: story_points\n"
            "      value: 5\n"
            "    status: Done\n"
            "    start_date: 2026-01-02\n"
            "    done_date: 2026-01-05\n"
            "    dependencies: [ABC-0]\n"
        )
        item = project.work_packages[0]
        assert project.name == "Demo"
        assert item.id == "ABC-1"
        assert item.status is IssueStatus.DONE
        assert item.estimate == StoryPointEstimate(5.0)
        assert item.start_date == date(2026, 1, 2)
        assert item.done_date == date(2026, 1, 5)
        assert item.dependencies == ["ABC-0"]

    def test_three_point(self):
        project = parse_project(
            "name: Demo\n"
            "work_packages:\n"
            "  - id: ABC-2\n"
            "    estimate:\n"
            "      type: three_point\n"
            "      optimistic: 2\n"
            "      most_likely: 3\n"
            "      pessimistic: 8\n"
        )
        assert project.work_packages[0].estimate == ThreePointEstimate(2.0, 3.0, 8.0)
        assert project.work_packages[0].dependencies is None

    def test_empty_dependencies_mean_previous_item(self):
        project = parse_project(
            "name: Demo\n"
            "work_packages:\n"
            "  - id: A\n"
            "  - id: B\n"
            "    dependencies: []\n"
            "  - id: C\n"
            "    dependencies: []\n"
        )
        assert project.work_packages[1].dependencies == ["A"]
        assert project.work_packages[2].dependencies == ["B"]

    def test_empty_dependencies_on_first_item_raises(self):
        with pytest.raises(MissingPreviousDependencyError):
            parse_project("name: Demo\nwork_packages:\n  - id: A\n    dependencies: []\n")

    def test_numeric_ids_become_strings(self):
        project = parse_project("name: Demo\nwork_packages:\n  - id: 7\n  - id: 8\n"
                                "    dependencies: [7]\n")
        assert project.work_packages[1].dependencies == ["7"]

    def test_invalid_date_raises(self):
        with pytest.raises(InvalidDateError, match="2026-99-01"):
            parse_project("name: Demo\nwork_packages:\n  - id: A\n    start_date: 2026-99-01\n")

    def test_invalid_status_raises(self):
        with pytest.raises(InvalidStatusError):
            parse_project("name: Demo\nwork_packages:\n  - id: A\n    status: Blocked\n")

    def test_blank_id_raises(self):
        with pytest.raises(MissingIssueIdError):
            parse_project("name: Demo\nwork_packages:\n  - id: ''\n")

    def test_unknown_estimate_type_raises(self):
        with pytest.raises(YamlParseError, match="t_shirt"):
            parse_project("name: Demo\nwork_packages:\n  - id: A\n"
                          "    estimate: {type: t_shirt, value: M}\n")

    def test_non_numeric_estimate_raises(self):
        with pytest.raises(YamlParseError, match="value"):
            parse_project("name: Demo\nwork_packages:\n  - id: A\n"
                          "    estimate: {type: story_points, value: lots}\n")

    def test_malformed_yaml_raises(self):
        with pytest.raises(YamlParseError):
            parse_project("name: [unclosed\n")

    def test_missing_work_packages_raises(self):
        with pytest.raises(YamlParseError):
            parse_project("name: Demo\n")

    def test_unreadable_reference_warns(self, capsys):
        project = parse_project(
            "name: Demo\nwork_packages:\n  - id: R\n"
            "    estimate: {type: reference, report_file_path: /nonexistent/report.yaml}\n")
        estimate = project.work_packages[0].estimate
        assert estimate == ReferenceEstimate("/nonexistent/report.yaml", None)
        assert "WARNING" in capsys.readouterr().out


class TestDumpProject:
    def test_contains_estimate_format(self):
        project = Project(name="TEST", work_packages=[WorkItem(
            id="ABC-1", summary="Example issue", description="Example description",
            estimate=StoryPointEstimate(3.0), status=IssueStatus.DONE,
            created_date=date(2026, 1, 12), start_date=date(2026, 1, 13),
            done_date=date(2026, 1, 15))])
        output = dump_project(project)
        assert "name: TEST" in output
        assert "id: ABC-1" in output
        assert "summary: Example issue" in output
        assert "type: story_points" in output
        assert "value: 3\n" in output
        assert "status: Done" in output
        assert "2026-01-13" in output

    def test_round_trip(self):
        project = Project(name="Round", work_packages=[
            WorkItem(id="A", summary="First", estimate=ThreePointEstimate(1.0, 2.5, 4.0),
                     status=IssueStatus.IN_PROGRESS, start_date=date(2026, 2, 16),
                     subgraph="Phase 1"),
            WorkItem(id="B", description="Line one\nLine two\n",
                     estimate=StoryPointEstimate(5.0), dependencies=["A"]),
        ])
        assert parse_project(dump_project(project)) == project


class TestReportYaml:
    def test_round_trip(self):
        report = build_report([2.0, 5.0, 9.0], date(2026, 2, 16), 3, 4, velocity=1.25,
                              data_source="demo.yaml")
        assert parse_report(dump_report(report)) == report

    def test_keys_in_order(self):
        report = build_report([1.0], date(2026, 2, 16), 1, 1)
        keys = [line.split(":")[0] for line in dump_report(report).splitlines()
                if not line.startswith(" ")]
        assert keys == ["data_source", "start_date", "velocity", "iterations",
                        "simulated_items", "p0", "p50", "p85", "p100"]

    def test_invalid_report_date_raises(self):
        report = build_report([1.0], date(2026, 2, 16), 1, 1)
        text = dump_report(report).replace("2026-02-17", "17.02.2026")
        with pytest.raises(InvalidDateError):
            parse_report(text)

    def test_missing_field_raises(self):
        with pytest.raises(YamlParseError):
            parse_report("data_source: x\nstart_date: 2026-02-16\n")


class TestParseCalendar:
    def test_weekdays_and_ranges(self):
        cal = parse_calendar(
            "free_weekdays: [Mon, friday]\n"
            "free_date_ranges:\n"
            "  - start_date: 2026-02-17\n"
            "    end_date: 2026-02-18\n")
        assert cal.free_weekdays == [0, 4]
        assert cal.get_capacity(date(2026, 2, 17)) == 0.0
        assert cal.get_capacity(date(2026, 2, 19)) == 1.0

    def test_empty_file_is_full_capacity(self):
        assert parse_calendar("").get_capacity(date(2026, 2, 16)) == 1.0

    def test_invalid_weekday(self):
        with pytest.raises(InvalidWeekdayError, match="Funday"):
            parse_calendar("free_weekdays: [Funday]\n", source="alice.yaml")

    def test_reversed_range(self):
        with pytest.raises(InvalidDateRangeError):
            parse_calendar("free_date_ranges:\n  - start_date: 2026-02-18\n"
                           "    end_date: 2026-02-17\n")

    def test_invalid_date(self):
        with pytest.raises(InvalidDateError):
            parse_calendar("free_date_ranges:\n  - start_date: 18/02/2026\n"
                           "    end_date: 2026-02-19\n")


class TestParseThroughput:
    def test_records(self):
        data = parse_throughput("- date: 2026-02-09\n  completed_issues: 5\n"
                                "- date: 2026-02-10\n  completed_issues: 3\n")
        assert data == [Throughput(date(2026, 2, 9), 5), Throughput(date(2026, 2, 10), 3)]

    def test_dump(self):
        output = dump_throughput([Throughput(date(2026, 2, 9), 5)])
        assert "2026-02-09" in output
        assert "completed_issues: 5" in output

    def test_negative_count_raises(self):
        with pytest.raises(YamlParseError):
            parse_throughput("- date: 2026-02-09\n  completed_issues: -1\n")

    def test_empty_file(self):
        assert parse_throughput("") == []


# ── Tier 3: Integration Tests (YAML I/O) ───────────────────────────────────


class TestFiles:
    def test_project_save_and_load(self, tmp_path):
        project = Project(name="Files", work_packages=[
            WorkItem(id="A", estimate=ThreePointEstimate(1.0, 2.0, 3.0))])
        path = str(tmp_path / "project.yaml")
        save_project(project, path)
        assert load_project(path) == project

    def test_reference_resolved_relative_to_project(self, tmp_path):
        save_report(build_report([2.0, 4.0, 7.0], date(2026, 2, 16), 3, 2),
                    str(tmp_path / "sub.yaml"))
        (tmp_path / "main.yaml").write_text(
            "name: Main\nwork_packages:\n  - id: SUB\n"
            "    estimate: {type: reference, report_file_path: sub.yaml}\n")
        estimate = load_project(str(tmp_path / "main.yaml")).work_packages[0].estimate
        assert estimate.report_file_path == "sub.yaml"
        assert estimate.cached == ThreePointEstimate(2.0, 4.0, 7.0)

    def test_report_save_and_load(self, tmp_path):
        report = build_report([3.0], date(2026, 2, 16), 1, 1)
        path = str(tmp_path / "report.yaml")
        save_report(report, path)
        assert load_report(path) == report

    def test_throughput_save_and_load(self, tmp_path):
        data = [Throughput(date(2026, 2, 9), 5), Throughput(date(2026, 2, 10), 0)]
        path = str(tmp_path / "throughput.yaml")
        save_throughput(data, path)
        assert load_throughput(path) == data

    def test_missing_file_raises_os_error(self, tmp_path):
        with pytest.raises(OSError):
            load_project(str(tmp_path / "nope.yaml"))


class TestLoadTeamCalendarDir:
    def test_loads_sorted_yaml_files(self, tmp_path):
        (tmp_path / "b.yml").write_text("free_date_ranges:\n  - start_date: 2026-02-17\n"
                                        "    end_date: 2026-02-18\n")
        (tmp_path / "a.yaml").write_text("free_weekdays: [Mon]\n")
        (tmp_path / "notes.txt").write_text("not a calendar")
        team = load_team_calendar_dir(str(tmp_path))
        assert len(team.calendars) == 2
        assert team.calendars[0].free_weekdays == [0]
        assert team.get_capacity(date(2026, 2, 16)) == 0.5
        assert team.get_capacity(date(2026, 2, 17)) == 0.5
        assert team.get_capacity(date(2026, 2, 19)) == 1.0

    def test_missing_directory(self, tmp_path):
        with pytest.raises(CalendarDirectoryNotFoundError):
            load_team_calendar_dir(str(tmp_path / "missing"))

    def test_file_instead_of_directory(self, tmp_path):
        path = tmp_path / "calendar.yaml"
        path.write_text("free_weekdays: [Mon]\n")
        with pytest.raises(CalendarDirectoryNotFoundError):
            load_team_calendar_dir(str(path))

    def test_no_yaml_files(self, tmp_path):
        (tmp_path / "readme.md").write_text("#")
        with pytest.raises(CalendarDirectoryEmptyError):
            load_team_calendar_dir(str(tmp_path))

    def test_bad_file_names_path(self, tmp_path):
        (tmp_path / "carol.yaml").write_text("free_weekdays: [Someday]\n")
        with pytest.raises(InvalidWeekdayError, match="carol.yaml"):
            load_team_calendar_dir(str(tmp_path))
