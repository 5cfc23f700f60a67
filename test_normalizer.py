"""
Snapshot normalizer tests.
"""

from conftest import NOW
from flowdash.core.utils import to_iso
from flowdash.data.normalizer import (
    SnapshotNormalizer,
    build_audience,
    is_suppressed,
    normalize_campaigns,
    normalize_events,
    normalize_flows,
    normalize_profile,
    normalize_profiles,
    normalize_revenue,
    parse_marketing_status,
)

NOW_ISO = to_iso(NOW)


def profile(pid, created="2024-03-10T00:00:00Z", **attributes):
    attributes.setdefault('email', f"{pid}@example.com")
    attributes.setdefault('created', created)
    return {'id': pid, 'attributes': attributes}


# ── Flows & campaigns ──────────────────────────────────────────────────
def test_flows_default_stats_and_names():
    flows = normalize_flows({'data': [
        {'id': "F1", 'attributes': {'name': "Welcome", 'status': "live"}},
        {'attributes': {}},
    ]})

    assert flows[0]['flow_id'] == "F1"
    assert flows[0]['flow_name'] == "Welcome"
    assert flows[0]['status'] == "live"
    assert flows[0]['emails_sent_30d'] == 0
    assert flows[1]['flow_id'] == "flow-1"
    assert flows[1]['flow_name'] == "Flow 2"
    assert flows[1]['status'] == "unknown"


def test_flows_ignore_garbage_input():
    assert normalize_flows(None) == []
    assert normalize_flows({'data': "nope"}) == []
    assert normalize_flows(["x", {'id': "F"}])[0]['flow_id'] == "F"


def test_campaigns_default_subject_and_send_date():
    campaigns = normalize_campaigns([{'id': "C1", 'attributes': {'name': "Spring"}}], NOW_ISO)

    assert campaigns[0]['campaign_id'] == "C1"
    assert campaigns[0]['name'] == "Spring"
    assert campaigns[0]['subject'] == "—"
    assert campaigns[0]['send_date'] == NOW_ISO
    assert campaigns[0]['revenue'] == 0


# ── Suppression & consent ──────────────────────────────────────────────
def test_suppression_shapes():
    assert is_suppressed({'suppression': {'suppressed': True}})
    assert is_suppressed({'suppression': {'email': {'marketing': {'suppressed': True}}}})
    assert is_suppressed({'suppression': {'suppressions': [{'channel': "EMAIL"}]}})
    assert is_suppressed({'suppression': {'suppressions': [{'reason': "HARD_BOUNCE"}]}})
    assert not is_suppressed({'suppression': {'suppressions': []}})
    assert not is_suppressed({})


def test_marketing_status_subscribed():
    status = parse_marketing_status({'subscriptions': {'email': {'marketing': {'consent': "SUBSCRIBED"}}}})
    assert status == {'consented': True, 'unsubscribed': False, 'has_status': True}


def test_marketing_status_unsubscribed_flag():
    status = parse_marketing_status({'subscriptions': {'email': {'marketing': {'unsubscribed': True}}}})
    assert status['unsubscribed'] is True
    assert status['has_status'] is True


def test_marketing_status_missing():
    assert parse_marketing_status({}) == {'consented': False, 'unsubscribed': False, 'has_status': False}


# ── Profiles ───────────────────────────────────────────────────────────
def test_profile_without_status_is_active():
    item = normalize_profile(profile("p1", first_name="Ada", last_name="Lovelace",
                                     location={'city': "London"}), NOW_ISO)

    assert item['name'] == "Ada Lovelace"
    assert item['email'] == "p1@example.com"
    assert item['location'] == "London"
    assert item['is_active'] is True
    assert item['is_suppressed'] is False


def test_profile_name_falls_back_to_email_then_placeholder():
    assert normalize_profile(profile("p1"), NOW_ISO)['name'] == "p1@example.com"
    assert normalize_profile({'id': "p2", 'attributes': {}}, NOW_ISO)['name'] == "Unknown profile"


def test_suppressed_profile_is_not_active():
    item = normalize_profile(profile("p1", suppression={'suppressed': True}), NOW_ISO)

    assert item['is_suppressed'] is True
    assert item['is_active'] is False


def test_profile_counts():
    profiles = normalize_profiles([
        profile("a"),
        profile("b", suppression={'suppressed': True}),
        profile("c", subscriptions={'email': {'marketing': {'consented': False, 'unsubscribed': None}}}),
    ], NOW_ISO)

    assert profiles['total_profiles'] == 3
    assert profiles['suppressed_profiles'] == 1
    # "c" has a status block with no consent
    assert profiles['active_profiles'] == 1
    assert len(profiles['items']) == 3


def test_audience_is_derived_from_profiles():
    profiles = normalize_profiles([
        profile("a", created="2024-03-14T00:00:00Z"),
        profile("b", created="2024-02-20T00:00:00Z"),
        profile("c", created="2023-01-01T00:00:00Z", suppression={'suppressed': True}),
    ], NOW_ISO)

    audience = build_audience(profiles, NOW)

    assert audience['total_profiles'] == 3
    assert audience['new_profiles_7d'] == 1
    assert audience['new_profiles_30d'] == 2
    assert audience['suppressed_profiles'] == 1
    assert len(audience['list_size_timeseries']) == 7
    assert audience['list_size_timeseries'][-1]['total_profiles'] == 3
    assert audience['list_size_timeseries'][0]['total_profiles'] == 2


# ── Revenue ────────────────────────────────────────────────────────────
def test_revenue_row_shape_with_total():
    payload = {'data': [{'attributes': {
        'results': [
            {'interval_start': "2024-03-01", 'sum_value': "12.5"},
            {'sum_value': 7},
        ],
        'total': {'sum_value': 99},
    }}]}

    revenue = normalize_revenue(payload, "2024-02-01T00:00:00.000Z")

    assert revenue['total_revenue'] == 99
    assert revenue['series'][0] == {'date': "2024-03-01", 'total_revenue': 12.5}
    assert revenue['series'][1]['date'] == "2024-02-01T00:00:00.000Z"


def test_revenue_empty_payload():
    assert normalize_revenue({}, "x") == {'total_revenue': 0.0, 'series': []}


# ── Events ─────────────────────────────────────────────────────────────
def test_events_mapping_and_limit():
    payload = {'data': [
        {'id': "e1", 'metric': {'name': "Placed Order"}, 'event': "Order #1",
         'properties': {'value': 25}, 'timestamp': "2024-03-15T09:00:00Z"},
    ] + [{'name': f"evt {i}"} for i in range(20)]}

    events = normalize_events(payload, NOW_ISO)

    assert len(events) == 10
    assert events[0] == {
        'id': "e1",
        'metric': "Placed Order",
        'name': "Order #1",
        'value': 25.0,
        'timestamp': "2024-03-15T09:00:00Z",
    }
    assert events[1]['id'] == "klaviyo-1"
    assert events[1]['value'] == 2.0
    assert events[1]['timestamp'] == NOW_ISO


# ── Snapshot assembly ──────────────────────────────────────────────────
def test_build_snapshot():
    revenue = {
        'last_7d': {'total_revenue': 50.0, 'series': []},
        'last_30d': {'total_revenue': 120.0, 'series': [{'date': "2024-03-14", 'total_revenue': 120.0}]},
        'last_90d': {'total_revenue': 300.0, 'series': []},
    }

    snapshot = SnapshotNormalizer(currency="EUR").build_snapshot(
        "store-1",
        [{'id': "F1", 'attributes': {'name': "Welcome", 'status': "live"}}],
        [],
        [profile("a"), profile("b", suppression={'suppressed': True})],
        revenue_by_range=revenue,
        revenue_metric_id="m1",
        now=NOW,
    )

    assert snapshot['store_id'] == "store-1"
    assert snapshot['synced_at'] == NOW_ISO
    assert snapshot['period'] == {'from': "2024-02-14T10:00:00.000Z", 'to': NOW_ISO}
    assert snapshot['overview']['total_revenue_30d'] == 120.0
    assert snapshot['overview']['avg_open_rate_30d'] == 0
    assert snapshot['revenue_timeseries'] == [
        {'date': "2024-03-14", 'flow_revenue': 0, 'campaign_revenue': 0, 'total_revenue': 120.0}
    ]
    assert snapshot['total_revenue_7d'] == 50.0
    assert snapshot['total_revenue_90d'] == 300.0
    assert snapshot['meta'] == {'revenue_metric_id': "m1", 'revenue_currency': "EUR"}
    assert snapshot['profiles']['total_profiles'] == 2
    assert snapshot['audience']['suppressed_profiles'] == 1
    assert snapshot['deliverability']['bounce_rate_30d'] == 0
    assert snapshot['campaigns'] == []


def test_build_snapshot_without_revenue():
    snapshot = SnapshotNormalizer().build_snapshot("s", [], [], [], now=NOW)

    assert snapshot['revenue_by_range'] == {}
    assert snapshot['total_revenue_7d'] == 0.0
    assert snapshot['overview']['total_revenue_30d'] == 0.0
    assert snapshot['meta']['revenue_currency'] == "USD"
