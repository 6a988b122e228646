"""
═══════════════════════════════════════════════════════════════════════════════
                    PROCPLAN — Alert Engine Tests
═══════════════════════════════════════════════════════════════════════════════

Rules, deterministic ids, deduplicated upsert, observers, escalation,
statistics and both notification repositories.

Run with: python -m pytest procplan/tests/test_alerts.py -v
"""
from datetime import date, timedelta

import pytest

from procplan.alerts import (
    AlertEngine,
    AlertFacts,
    Category,
    EscalationPolicy,
    InMemoryNotificationRepository,
    Notification,
    NotificationAction,
    NotificationObserver,
    Priority,
    Severity,
    compute_statistics,
    time_bucket,
)
from procplan.alerts.sql_repository import SqlNotificationRepository
from procplan.coherence import CoherenceValidator
from procplan.config import AlertSettings
from procplan.optimization import Resource, ResourceKind
from procplan.project_planning import Project
from procplan.scheduling.types import Criticality, ListLine, ListRecord, OrderLine, OrderRecord
from procplan.tests.conftest import NOW, TODAY, make_item

BUCKET = "2025060100"


@pytest.fixture
def engine():
    return AlertEngine(settings=AlertSettings(), clock=lambda: NOW)


def by_category(notifications, category):
    return [n for n in notifications if n.category == category]


def coherence_result(orders_amount):
    list_record = ListRecord(
        id="L1", code="LST-001", required_date=date(2025, 6, 30),
        lines=(ListLine(lead_time_days=10, quantity=10, unit_price=100.0),),
    )
    orders = [OrderRecord(
        id="O1", code="PED-001", required_date=date(2025, 6, 20), list_id="L1",
        lines=(OrderLine(lead_time_days=5, quantity_ordered=1, unit_price=orders_amount),),
    )]
    return CoherenceValidator().validate(list_record, orders)


def make_notification(notification_id="n1", **changes):
    values = dict(
        id=notification_id,
        severity=Severity.WARNING,
        category=Category.COHERENCE,
        title="Coherence deviation detected",
        message="List LST-001 deviates 10.0% from its orders",
        created_at=NOW,
        priority=Priority.HIGH,
        requires_action=True,
        recipients=["finance"],
    )
    values.update(changes)
    return Notification(**values)


class TestBuckets:

    def test_daily_bucket_floors_to_midnight_utc(self):
        assert time_bucket(NOW, 24) == BUCKET
        assert time_bucket(NOW + timedelta(hours=14), 24) == BUCKET
        assert time_bucket(NOW + timedelta(hours=15), 24) == "2025060200"

    def test_hourly_bucket(self):
        assert time_bucket(NOW, 1) == "2025060109"


class TestCriticalDateRule:

    def test_window_match_and_severity(self, engine):
        items = [
            make_item("i2", 0, 2, criticality=Criticality.HIGH),
            make_item("i3", 0, 3, criticality=Criticality.HIGH),
            make_item("i8", 0, 8, criticality=Criticality.CRITICAL),
            make_item("low", 0, 3),
        ]
        found = by_category(engine.evaluate(AlertFacts(items=items)), Category.CRITICAL_DATE)
        ids = sorted(n.id for n in found)

        assert ids == sorted([
            f"critical_date:i2:1d:{BUCKET}",
            f"critical_date:i2:3d:{BUCKET}",
            f"critical_date:i3:3d:{BUCKET}",
            f"critical_date:i8:7d:{BUCKET}",
        ])
        i3 = next(n for n in found if n.related_entity_id == "i3")
        assert i3.severity == Severity.CRITICAL
        assert i3.priority == Priority.CRITICAL
        assert i3.due_at == TODAY + timedelta(days=3)
        assert i3.requires_action
        i8 = next(n for n in found if n.related_entity_id == "i8")
        assert i8.severity == Severity.WARNING
        assert i8.priority == Priority.MEDIUM

    def test_six_days_is_error(self, engine):
        item = make_item("i6", 0, 6, criticality=Criticality.HIGH)
        found = engine.evaluate(AlertFacts(items=[item]))
        assert [n.severity for n in found] == [Severity.ERROR]


class TestCoherenceRule:

    @pytest.mark.parametrize("orders_amount,expected", [
        (1030.0, None),
        (1100.0, (Severity.WARNING, Priority.MEDIUM)),
        (1300.0, (Severity.ERROR, Priority.HIGH)),
        (1000.0, None),
    ])
    def test_threshold_and_severity(self, engine, orders_amount, expected):
        facts = AlertFacts(coherence_results=[coherence_result(orders_amount)])
        found = engine.evaluate(facts)
        if expected is None:
            assert found == []
        else:
            assert [(n.severity, n.priority) for n in found] == [expected]
            assert found[0].id == f"coherence:L1:deviation:{BUCKET}"
            assert "PED-001" in found[0].detail


class TestBudgetRule:

    def test_each_crossed_threshold(self, engine, projects):
        found = by_category(engine.evaluate(AlertFacts(projects=projects)), Category.BUDGET)
        assert sorted(n.id for n in found) == [f"budget:P1:75:{BUCKET}", f"budget:P1:85:{BUCKET}"]
        assert all(n.severity == Severity.ERROR for n in found)
        assert all(n.requires_action for n in found)

    def test_below_action_threshold(self, engine):
        project = Project(project_id="P9", name="Nueva", budget_amount=1000.0, executed_amount=800.0)
        found = engine.evaluate(AlertFacts(projects=[project]))
        assert len(found) == 1
        assert found[0].severity == Severity.WARNING
        assert not found[0].requires_action

    def test_critical_at_95(self, engine):
        project = Project(project_id="P9", name="Nueva", budget_amount=1000.0, executed_amount=960.0)
        found = engine.evaluate(AlertFacts(projects=[project]))
        assert len(found) == 3
        assert {n.severity for n in found} == {Severity.CRITICAL}

    def test_disabled_rule(self, projects):
        settings = AlertSettings()
        settings.budget.enabled = False
        engine = AlertEngine(settings=settings, clock=lambda: NOW)
        assert by_category(engine.evaluate(AlertFacts(projects=projects)), Category.BUDGET) == []


class TestResourceRule:

    def managed_by_ana(self, count):
        return [Project(project_id=f"P{i}", name=f"Proyecto {i}", manager_name="Ana") for i in range(count)]

    def test_no_overload_at_capacity(self, engine):
        assert engine.evaluate(AlertFacts(projects=self.managed_by_ana(5))) == []

    def test_overload_warning(self, engine):
        found = engine.evaluate(AlertFacts(projects=self.managed_by_ana(6)))
        assert len(found) == 1
        assert found[0].id == f"resource:Ana:manager:{BUCKET}"
        assert found[0].severity == Severity.WARNING
        assert found[0].metadata["excess"] == 1

    def test_overload_critical(self, engine):
        found = engine.evaluate(AlertFacts(projects=self.managed_by_ana(8)))
        assert found[0].severity == Severity.CRITICAL

    def test_item_loads_from_resource_pool(self, engine):
        pool = [
            Resource(id="R1", name="Luis", kind=ResourceKind.SUPPLIER, max_capacity=2),
            Resource(id="R2", name="Marta", kind=ResourceKind.COORDINATOR, max_capacity=2),
        ]
        items = [make_item(f"r1-{n}", n, 5, resource_id="R1") for n in range(3)]
        items += [make_item("r2-0", 0, 5, resource_id="R2"), make_item("free", 0, 5)]

        found = engine.evaluate(AlertFacts(items=items, resources=pool))
        assert [n.id for n in found] == [f"resource:R1:supplier:{BUCKET}"]
        assert found[0].severity == Severity.WARNING
        assert found[0].metadata["excess"] == 1
        assert found[0].actions[0].parameters["assigned_ids"] == ["r1-0", "r1-1", "r1-2"]

        items.append(make_item("r1-3", 3, 5, resource_id="R1"))
        found = engine.evaluate(AlertFacts(items=items, resources=pool))
        assert found[0].severity == Severity.CRITICAL

    def test_items_without_pool_are_not_counted(self, engine):
        items = [make_item(f"r1-{n}", n, 5, resource_id="R1") for n in range(4)]
        assert engine.evaluate(AlertFacts(items=items)) == []


class TestSystemRule:

    def test_volume_and_trend(self, engine, projects):
        facts = AlertFacts(projects=projects, total_items=1500)
        found = by_category(engine.evaluate(facts), Category.SYSTEM)
        volume = next(n for n in found if n.related_entity_id == "working_set")
        trend = next(n for n in found if n.related_entity_id == "projects")
        assert volume.severity == Severity.INFO
        assert not volume.requires_action
        assert trend.severity == Severity.WARNING
        assert trend.requires_action
        assert trend.metadata["project_ids"] == ["P2"]
        assert trend.metadata["average_delay_days"] == 31

    def test_terminal_projects_are_not_late(self, engine):
        closed = Project(project_id="P3", name="Cerrado", status="closed", end_date=date(2025, 1, 1))
        assert engine.evaluate(AlertFacts(projects=[closed])) == []


class TestDeduplication:

    def test_same_bucket_overwrites(self, engine, projects):
        facts = AlertFacts(projects=projects)
        first = engine.generate(facts)
        second = engine.generate(facts, now=NOW + timedelta(hours=2))

        assert len(first.created) == 3
        assert second.created == []
        assert len(second.updated) == 3
        assert engine.repository.count() == 3

    def test_read_state_and_created_at_survive(self, engine, projects):
        facts = AlertFacts(projects=projects)
        run = engine.generate(facts)
        target = run.created[0].id
        assert engine.mark_read(target, at=NOW + timedelta(hours=1))

        engine.generate(facts, now=NOW + timedelta(hours=3))
        stored = engine.repository.get(target)
        assert stored.read
        assert stored.created_at == NOW
        assert engine.list(read=False) and all(n.id != target for n in engine.list(read=False))

    def test_next_bucket_creates_new_notifications(self, engine, projects):
        facts = AlertFacts(projects=projects)
        engine.generate(facts)
        run = engine.generate(facts, now=NOW + timedelta(days=1))
        assert len(run.created) == 3
        assert engine.repository.count() == 6

    def test_evaluate_does_not_store(self, engine, projects):
        engine.evaluate(AlertFacts(projects=projects))
        assert engine.repository.count() == 0


class Recorder(NotificationObserver):
    def __init__(self):
        self.seen = []

    def on_notification(self, notification):
        self.seen.append(notification.id)


class Broken(NotificationObserver):
    def on_notification(self, notification):
        raise RuntimeError("transport down")


class TestObservers:

    def test_observers_see_created_only(self, projects):
        recorder = Recorder()
        engine = AlertEngine(settings=AlertSettings(), observers=[Broken(), recorder], clock=lambda: NOW)
        facts = AlertFacts(projects=projects)

        run = engine.generate(facts)
        engine.generate(facts)

        assert sorted(recorder.seen) == sorted(n.id for n in run.created)


class TestEscalation:

    def test_levels_by_elapsed_time(self):
        policy = EscalationPolicy()
        notification = make_notification()
        assert policy.level_for(notification, NOW + timedelta(hours=1)) == 0
        assert policy.level_for(notification, NOW + timedelta(hours=2)) == 1
        assert policy.level_for(notification, NOW + timedelta(hours=7)) == 2
        assert policy.level_for(notification, NOW + timedelta(hours=30)) == 3

    def test_escalate_appends_tier_recipients(self):
        policy = EscalationPolicy()
        notification = make_notification()
        escalated = policy.escalate(notification, NOW + timedelta(hours=7))

        assert escalated.escalation_level == 2
        assert escalated.recipients == ["finance", "supervisor", "management"]
        assert "escalated_at" in escalated.metadata
        assert notification.escalation_level == 0
        assert notification.recipients == ["finance"]
        assert policy.escalate(escalated, NOW + timedelta(hours=8)) is escalated

    def test_read_or_informational_never_escalate(self):
        policy = EscalationPolicy()
        later = NOW + timedelta(hours=48)
        assert policy.level_for(make_notification(read=True), later) == 0
        assert policy.level_for(make_notification(requires_action=False), later) == 0

    def test_engine_persists_escalation(self, engine, projects):
        engine.generate(AlertFacts(projects=projects, total_items=1500))
        escalated = engine.escalate_pending(now=NOW + timedelta(hours=3))

        assert escalated and all(n.escalation_level == 1 for n in escalated)
        assert all(n.requires_action for n in escalated)
        stored = engine.repository.get(escalated[0].id)
        assert stored.escalation_level == 1

        # Re-evaluating in the same bucket keeps the reached level
        engine.generate(AlertFacts(projects=projects, total_items=1500), now=NOW + timedelta(hours=4))
        assert engine.repository.get(escalated[0].id).escalation_level == 1

    @pytest.mark.parametrize("store", ["memory", "sql"])
    def test_regenerate_keeps_escalated_recipients(self, store):
        repository = (
            InMemoryNotificationRepository() if store == "memory"
            else SqlNotificationRepository.from_url("sqlite://")
        )
        engine = AlertEngine(settings=AlertSettings(), repository=repository, clock=lambda: NOW)
        project = Project(project_id="P9", name="Nueva", budget_amount=1000.0, executed_amount=960.0)
        facts = AlertFacts(projects=[project])
        engine.generate(facts)

        escalated = engine.escalate_pending(now=NOW + timedelta(hours=7))
        assert {n.escalation_level for n in escalated} == {2}
        target = escalated[0].id
        assert repository.get(target).recipients == ["management", "finance", "supervisor"]

        run = engine.generate(facts, now=NOW + timedelta(hours=8))
        assert run.created == []
        stored = repository.get(target)
        assert stored.escalation_level == 2
        assert stored.recipients == ["management", "finance", "supervisor"]
        assert "escalated_at" in stored.metadata

        # Nothing further is due until the next tier
        assert engine.escalate_pending(now=NOW + timedelta(hours=9)) == []


class TestStatistics:

    def test_summary(self):
        notifications = [
            make_notification("a", read=True, read_at=NOW + timedelta(hours=2)),
            make_notification("b", severity=Severity.CRITICAL, priority=Priority.CRITICAL),
            make_notification("c", severity=Severity.INFO, requires_action=False,
                              created_at=NOW - timedelta(days=2)),
        ]
        stats = compute_statistics(notifications, now=NOW)

        assert stats.total == 3
        assert stats.pending == 2
        assert stats.critical == 1
        assert stats.response_rate == pytest.approx(50.0)
        assert stats.average_response_hours == pytest.approx(2.0)
        assert stats.by_severity == {"warning": 1, "critical": 1, "info": 1}
        assert len(stats.weekly_trend) == 7
        assert stats.weekly_trend[-1] == (TODAY, 2)
        assert stats.weekly_trend[-3] == (TODAY - timedelta(days=2), 1)

    def test_empty(self):
        stats = compute_statistics([], now=NOW)
        assert stats.total == 0
        assert stats.response_rate == 0.0


@pytest.fixture(params=["memory", "sql"])
def repository(request):
    if request.param == "memory":
        return InMemoryNotificationRepository()
    return SqlNotificationRepository.from_url("sqlite://")


class TestRepositories:

    def test_upsert_reports_creation(self, repository):
        assert repository.count() == 0
        stored, created = repository.upsert(make_notification())
        assert created
        assert stored.id == "n1"
        _, created = repository.upsert(make_notification(title="Updated"))
        assert not created
        assert repository.get("n1").title == "Updated"
        assert repository.count() == 1
        repository.upsert(make_notification("n2"))
        assert repository.count() == 2

    def test_round_trip_fields(self, repository):
        repository.upsert(make_notification(
            due_at=date(2025, 6, 10),
            metadata={"deviation_percent": 10.0},
            actions=[NotificationAction("review", "Review", target="/procurement/coherence/L1")],
        ))
        stored = repository.get("n1")
        assert stored.created_at == NOW
        assert stored.due_at == date(2025, 6, 10)
        assert stored.metadata == {"deviation_percent": 10.0}
        assert stored.actions[0].target == "/procurement/coherence/L1"
        assert stored.recipients == ["finance"]

    def test_filters_and_order(self, repository):
        repository.upsert(make_notification("old", created_at=NOW - timedelta(days=2), category=Category.SYSTEM))
        repository.upsert(make_notification("new", priority=Priority.CRITICAL))
        repository.upsert(make_notification("mid", created_at=NOW - timedelta(hours=5)))
        repository.mark_read("mid", at=NOW)

        assert [n.id for n in repository.list()] == ["new", "mid", "old"]
        assert [n.id for n in repository.list(read=False)] == ["new", "old"]
        assert [n.id for n in repository.list(category="system")] == ["old"]
        assert [n.id for n in repository.list(priority=Priority.CRITICAL)] == ["new"]
        assert [n.id for n in repository.list(since=NOW - timedelta(days=1))] == ["new", "mid"]
        assert [n.id for n in repository.list(until=NOW - timedelta(days=1))] == ["old"]

    def test_mark_read(self, repository):
        repository.upsert(make_notification())
        assert repository.mark_read("n1", at=NOW + timedelta(hours=1))
        stored = repository.get("n1")
        assert stored.read
        assert stored.read_at == NOW + timedelta(hours=1)
        assert not repository.mark_read("missing")

    def test_engine_on_sql_store(self, projects):
        engine = AlertEngine(
            settings=AlertSettings(),
            repository=SqlNotificationRepository.from_url("sqlite://"),
            clock=lambda: NOW,
        )
        facts = AlertFacts(projects=projects)
        assert len(engine.generate(facts).created) == 3
        assert engine.generate(facts).created == []
        assert engine.statistics(now=NOW).total == 3
