"""
Dashboard aggregation and store view calculations.
"""

from conftest import NOW
from flowdash.data.analytics import AnalyticsEngine


def row(store_id, raw):
    return {'store_id': store_id, 'raw': raw, 'created_at': "2024-03-15T00:00:00.000Z"}


# ── Dashboard totals ───────────────────────────────────────────────────
def test_aggregate_from_profile_items():
    rows = [
        row("s1", {
            'profiles': {'items': [
                {'id': "a", 'is_active': True, 'is_suppressed': False},
                {'id': "b", 'is_active': False, 'is_suppressed': True},
            ]},
            'flows': [{'status': "Live"}, {'status': "draft"}],
            'campaigns': [{'status': "live"}],
        }),
        row("s2", {'profiles': {'items': [{'id': "c", 'is_active': True, 'is_suppressed': False}]}}),
    ]

    totals = AnalyticsEngine.aggregate_snapshots(rows)

    assert totals['stores'] == 2
    assert totals['profiles']['total'] == 3
    assert totals['profiles']['active'] == 2
    assert totals['profiles']['suppressed'] == 1
    assert [p['store_id'] for p in totals['profiles']['list']] == ["s1", "s1", "s2"]
    assert totals['active_flows'] == 1
    assert totals['active_campaigns'] == 1


def test_aggregate_falls_back_to_counters_and_audience():
    rows = [
        row("s1", {'profiles': {'total_profiles': 10, 'active_profiles': 7, 'suppressed_profiles': 0}}),
        row("s2", {'audience': {'total_profiles': 5, 'suppressed_profiles': 2}}),
        row("s3", {'audience': {'total_profiles': 1, 'suppressed_profiles': 4}}),
    ]

    totals = AnalyticsEngine.aggregate_snapshots(rows)

    assert totals['profiles']['total'] == 16
    # s1 reports 0 suppressed; the audience value is not used in its place
    assert totals['profiles']['suppressed'] == 6
    assert totals['profiles']['active'] == 7 + 3 + 0
    assert totals['profiles']['list'] == []


def test_aggregate_empty():
    totals = AnalyticsEngine.aggregate_snapshots([])
    assert totals['profiles'] == {'total': 0, 'active': 0, 'suppressed': 0, 'list': []}
    assert totals['active_flows'] == 0


def test_merge_revenue_sums_and_sorts():
    rows = [
        row("s1", {'revenue_by_range': {'last_7d': {'total_revenue': 10, 'series': [
            {'date': "2024-03-14T00:00:00Z", 'total_revenue': 4},
            {'date': "2024-03-12T00:00:00Z", 'total_revenue': 6},
        ]}}}),
        row("s2", {'revenue_by_range': {'last_7d': {'total_revenue': 5, 'series': [
            {'date': "2024-03-14", 'total_revenue': 5},
        ]}}}),
        row("s3", {}),
    ]

    revenue = AnalyticsEngine.merge_revenue(rows, "last_7d")

    assert revenue['total'] == 15
    assert revenue['series'] == [
        {'date': "2024-03-12", 'total_revenue': 6},
        {'date': "2024-03-14", 'total_revenue': 9},
    ]
    assert AnalyticsEngine.merge_revenue(rows, "year_to_date") == {'total': 0.0, 'series': []}


# ── Store view ─────────────────────────────────────────────────────────
def test_active_counts():
    snapshot = {
        'flows': [{'status': "live"}, {'status': "Active"}, {'status': "manual"}],
        'campaigns': [{'status': ""}, {'status': "Sent"}, {'status': "Draft"}, {}],
    }
    assert AnalyticsEngine.count_active_flows(snapshot) == 2
    assert AnalyticsEngine.count_active_campaigns(snapshot) == 3


def test_filter_profiles_by_days():
    items = [
        {'id': "new", 'created_at': "2024-03-10T00:00:00Z"},
        {'id': "old", 'created_at': "2023-06-01T00:00:00Z"},
        {'id': "bad", 'created_at': "not a date"},
    ]

    assert [p['id'] for p in AnalyticsEngine.filter_profiles_by_days(items, 7, NOW)] == ["new"]
    assert [p['id'] for p in AnalyticsEngine.filter_profiles_by_days(items, 365, NOW)] == ["new", "old"]


def test_top_flows():
    snapshot = {'flows': [{'flow_id': str(i), 'emails_sent_30d': i} for i in range(8)]}
    assert [f['flow_id'] for f in AnalyticsEngine.top_flows(snapshot)] == ["7", "6", "5", "4", "3"]


def test_profile_progress():
    assert AnalyticsEngine.profile_progress(0) == 0
    assert AnalyticsEngine.profile_progress(1000) == 25
    assert AnalyticsEngine.profile_progress(1020) == 26
    assert AnalyticsEngine.profile_progress(9000) == 100


# ── Settings view ──────────────────────────────────────────────────────
def test_count_flows_shapes():
    assert AnalyticsEngine.count_flows({'flows': [1, 2]}) == 2
    assert AnalyticsEngine.count_flows({'data': [1]}) == 1
    assert AnalyticsEngine.count_flows([1, 2, 3]) == 3
    assert AnalyticsEngine.count_flows({'other': 1}) is None
    assert AnalyticsEngine.count_flows(None) is None


def test_derive_status():
    assert AnalyticsEngine.derive_status(None) == "Never synced"
    assert AnalyticsEngine.derive_status({'status': "success"}) == "OK"
    assert AnalyticsEngine.derive_status({'status': "error"}) == "Error"


# ── Tables ─────────────────────────────────────────────────────────────
def test_paginate_clamps_page():
    items = list(range(60))

    assert AnalyticsEngine.paginate(items, 1) == (list(range(25)), 1, 3)
    assert AnalyticsEngine.paginate(items, 9) == (list(range(50, 60)), 3, 3)
    assert AnalyticsEngine.paginate(items, 0)[1] == 1
    assert AnalyticsEngine.paginate([], 4) == ([], 1, 1)


def test_profiles_dataframe():
    df = AnalyticsEngine.profiles_dataframe([
        {'name': "Ada", 'email': "ada@example.com", 'created_at': "2024-03-10T05:00:00Z", 'store_id': "s1"},
    ])

    assert list(df.columns) == ['Name', 'Email', 'Phone', 'Created', 'Updated', 'Location', 'Store']
    assert df.iloc[0]['Created'] == "2024-03-10"
    assert df.iloc[0]['Phone'] == "—"
    assert AnalyticsEngine.profiles_dataframe([]).empty
