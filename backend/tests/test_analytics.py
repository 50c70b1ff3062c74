import unittest
from datetime import date, datetime, timedelta, timezone

from _support import add_user, make_session_factory

from app.core.timeutil import utcnow
from app.models.message import Message
from app.models.ticket import Ticket, TicketStatus
from app.models.user_role import AppRole
from app.services.analytics import (
    AnalyticsFilters,
    StaffMessageRow,
    TicketRow,
    build_dashboard,
    common_issues,
    compute_metrics,
    list_staff,
    load_tickets,
    summarize_staff,
    ticket_trends,
)


T0 = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


def _ticket(subject, status=TicketStatus.PENDING, created=T0, resolved_after=None, student="s1", tid=None):
    updated = created + resolved_after if resolved_after else created
    return TicketRow(
        id=tid or f"{subject}-{created.isoformat()}",
        student_id=student,
        subject=subject,
        status=status,
        created_at=created,
        updated_at=updated,
    )


class TestMetrics(unittest.TestCase):
    def test_empty(self):
        self.assertEqual(
            compute_metrics([]),
            {"total": 0, "pending": 0, "in_progress": 0, "completed": 0, "avg_resolution_hours": 0.0},
        )

    def test_counts_and_resolution_hours(self):
        rows = [
            _ticket("a"),
            _ticket("b", TicketStatus.IN_PROGRESS),
            _ticket("c", TicketStatus.COMPLETED, resolved_after=timedelta(hours=2, minutes=59)),
            _ticket("d", TicketStatus.COMPLETED, resolved_after=timedelta(hours=5, minutes=10)),
        ]
        metrics = compute_metrics(rows)
        self.assertEqual(metrics["total"], 4)
        self.assertEqual(metrics["pending"], 1)
        self.assertEqual(metrics["in_progress"], 1)
        self.assertEqual(metrics["completed"], 2)
        # Whole hours: 2 and 5.
        self.assertEqual(metrics["avg_resolution_hours"], 3.5)

    def test_trends_group_by_day(self):
        rows = [
            _ticket("a", created=T0 + timedelta(days=1)),
            _ticket("b", created=T0),
            _ticket("c", created=T0 + timedelta(hours=3)),
        ]
        self.assertEqual(
            ticket_trends(rows),
            [
                {"date": "2024-03-01", "label": "Mar 01", "count": 2},
                {"date": "2024-03-02", "label": "Mar 02", "count": 1},
            ],
        )

    def test_common_issues(self):
        rows = [_ticket("Wifi", tid="1"), _ticket("Wifi", tid="2"), _ticket("Wifi", tid="3"), _ticket("Email", tid="4")]
        issues = common_issues(rows)
        self.assertEqual(issues[0], {"subject": "Wifi", "count": 3, "percentage": 75.0})
        self.assertEqual(issues[1], {"subject": "Email", "count": 1, "percentage": 25.0})

    def test_common_issues_top_ten(self):
        rows = [_ticket(f"Subject {i}", tid=str(i)) for i in range(15)]
        self.assertEqual(len(common_issues(rows)), 10)

    def test_common_issues_empty(self):
        self.assertEqual(common_issues([]), [])


class TestStaffSummary(unittest.TestCase):
    def test_summary(self):
        rows = [
            StaffMessageRow("t1", T0 + timedelta(minutes=30), "s1", T0, TicketStatus.COMPLETED),
            StaffMessageRow("t1", T0 + timedelta(minutes=90), "s1", T0, TicketStatus.COMPLETED),
            StaffMessageRow("t2", T0 + timedelta(minutes=45), "s2", T0, TicketStatus.PENDING),
        ]
        summary = summarize_staff("staff-1", rows)
        self.assertEqual(summary["tickets_handled"], 2)
        self.assertEqual(summary["resolved_count"], 1)
        self.assertEqual(summary["resolution_rate"], 50.0)
        self.assertEqual(summary["avg_response_minutes"], 55.0)

    def test_own_tickets_excluded_from_response_time(self):
        rows = [
            StaffMessageRow("t1", T0 + timedelta(minutes=1), "staff-1", T0, TicketStatus.PENDING),
            StaffMessageRow("t2", T0 + timedelta(minutes=20), "s2", T0, TicketStatus.PENDING),
        ]
        summary = summarize_staff("staff-1", rows)
        self.assertEqual(summary["tickets_handled"], 2)
        self.assertEqual(summary["avg_response_minutes"], 20.0)

    def test_no_messages(self):
        self.assertEqual(
            summarize_staff("staff-1", []),
            {"tickets_handled": 0, "avg_response_minutes": 0.0, "resolved_count": 0, "resolution_rate": 0.0},
        )


class TestFilters(unittest.TestCase):
    def test_default_window(self):
        filters = AnalyticsFilters.default(date(2024, 3, 31))
        self.assertEqual(filters.date_from, date(2024, 3, 1))
        self.assertEqual(filters.date_to, date(2024, 3, 31))

    def test_bounds_cover_whole_days(self):
        start, end = AnalyticsFilters(date_from=date(2024, 3, 1), date_to=date(2024, 3, 2)).created_bounds()
        self.assertEqual(start, datetime(2024, 3, 1, tzinfo=timezone.utc))
        self.assertEqual((end.date(), end.hour, end.minute), (date(2024, 3, 2), 23, 59))


class TestDashboardQueries(unittest.TestCase):
    def setUp(self):
        self.db = make_session_factory()()
        self.student = add_user(self.db, "Stu Dent", AppRole.STUDENT)
        self.alice = add_user(self.db, "Alice Staff", AppRole.STAFF)
        self.bob = add_user(self.db, "Bob Staff", AppRole.STAFF)
        self.admin = add_user(self.db, "Ada Admin", AppRole.ADMIN)

        now = utcnow()
        self.recent = now - timedelta(days=2)
        self.t1 = self._ticket("Wifi", TicketStatus.COMPLETED, self.recent)
        self.t2 = self._ticket("Wifi", TicketStatus.PENDING, self.recent + timedelta(hours=1))
        self.old = self._ticket("Printer", TicketStatus.PENDING, now - timedelta(days=90))

        self._message(self.t1, self.alice, self.recent + timedelta(minutes=10))
        self._message(self.t2, self.alice, self.recent + timedelta(hours=1, minutes=30))
        self._message(self.t2, self.bob, self.recent + timedelta(hours=2))
        self.db.commit()

    def tearDown(self):
        self.db.close()

    def _ticket(self, subject, status, created):
        ticket = Ticket(student_id=self.student.id, subject=subject, status=status, created_at=created, updated_at=created)
        self.db.add(ticket)
        self.db.flush()
        self.db.add(Message(ticket_id=ticket.id, sender_id=self.student.id, content=subject, created_at=created))
        return ticket

    def _message(self, ticket, sender, created):
        self.db.add(Message(ticket_id=ticket.id, sender_id=sender.id, content="reply", created_at=created))

    def test_default_window_excludes_old_tickets(self):
        rows = load_tickets(self.db, AnalyticsFilters.default())
        self.assertEqual({r.id for r in rows}, {self.t1.id, self.t2.id})

    def test_status_filter(self):
        filters = AnalyticsFilters(status=TicketStatus.PENDING)
        self.assertEqual({r.id for r in load_tickets(self.db, filters)}, {self.t2.id, self.old.id})

    def test_staff_filter_limits_to_replied_tickets(self):
        filters = AnalyticsFilters(staff_id=self.bob.id)
        self.assertEqual([r.id for r in load_tickets(self.db, filters)], [self.t2.id])

    def test_list_staff_includes_admins(self):
        names = [p.name for p in list_staff(self.db)]
        self.assertEqual(names, ["Ada Admin", "Alice Staff", "Bob Staff"])

    def test_dashboard(self):
        dashboard = build_dashboard(self.db, AnalyticsFilters.default())
        self.assertEqual(dashboard["metrics"]["total"], 2)
        self.assertEqual(dashboard["common_issues"], [{"subject": "Wifi", "count": 2, "percentage": 100.0}])

        perf = dashboard["staff_performance"]
        self.assertEqual(perf[0]["name"], "Alice Staff")
        self.assertEqual(perf[0]["tickets_handled"], 2)
        self.assertEqual(perf[0]["resolved_count"], 1)
        self.assertEqual(perf[0]["resolution_rate"], 50.0)
        self.assertEqual(perf[0]["avg_response_minutes"], 20.0)
        bob = next(p for p in perf if p["name"] == "Bob Staff")
        self.assertEqual(bob["tickets_handled"], 1)
        self.assertEqual(bob["avg_response_minutes"], 60.0)


if __name__ == "__main__":
    unittest.main()
