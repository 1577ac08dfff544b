"""Tests for canonical identity extraction from history listings."""

from __future__ import annotations

from wechat_feed.core.identity import (
    candidate_units,
    extract_units,
    identity_from_document,
    parse_identity,
)
from wechat_feed.core.types import CanonicalArticleId


def _msg(title, mid, idx, biz="Bz1", **extra):
    msg = {
        "title": title,
        "content_url": f"https://mp.weixin.qq.com/s?__biz={biz}&amp;mid={mid}&amp;idx={idx}&amp;sn=abc",
    }
    msg.update(extra)
    return msg


def _entry(primary, subs=None, ts=1500000000):
    app_msg = dict(primary)
    if subs is not None:
        app_msg["multi_app_msg_item_list"] = subs
    return {"comm_msg_info": {"datetime": ts}, "app_msg_ext_info": app_msg}


def test_parse_identity_from_query():
    assert parse_identity("https://host/s?__biz=Bz1&mid=Mid1&idx=2") == CanonicalArticleId(
        biz="Bz1", mid="Mid1", idx="2"
    )


def test_parse_identity_missing_param_returns_none():
    assert parse_identity("https://host/s?__biz=Bz1&mid=Mid1") is None
    assert parse_identity("https://host/s/AbCdEf") is None
    assert parse_identity("") is None
    assert parse_identity(None) is None


def test_identity_from_document_reads_inline_script():
    body = 'var biz = "Bz9";\nvar mid = "100";\nvar idx = "3";'
    assert identity_from_document(body) == CanonicalArticleId(biz="Bz9", mid="100", idx="3")
    assert identity_from_document('var biz = "Bz9";') is None
    assert identity_from_document(None) is None


def test_entry_with_sub_items_yields_k_plus_one_units_sharing_timestamp():
    entry = _entry(_msg("Main", "M1", 1), [_msg("Sub A", "M1", 2), _msg("Sub B", "M1", 3)])

    pairs = candidate_units([entry])

    assert len(pairs) == 3
    assert len({publish_at for _msg_obj, publish_at in pairs}) == 1
    assert pairs[0][1] == "2017-07-14T02:40:00+00:00"


def test_entry_without_message_is_skipped():
    assert candidate_units([{"comm_msg_info": {"datetime": 1500000000}}]) == []


def test_extract_units_unescapes_and_parses_identity():
    entry = _entry(_msg("Tom &amp; Jerry", "M1", 1, cover="c.png", digest="d &lt;1&gt;", author="a", copyright_stat=11))

    units = extract_units([entry])

    assert len(units) == 1
    unit = units[0]
    assert unit.title == "Tom & Jerry"
    assert "&amp;" not in unit.link
    assert unit.id == CanonicalArticleId(biz="Bz1", mid="M1", idx="1")
    assert unit.cover == "c.png"
    assert unit.digest == "d <1>"
    assert unit.copyright_stat == 11


def test_extract_units_drops_units_without_title_or_link():
    entry = _entry(
        _msg("Main", "M1", 1),
        [
            {"title": "", "content_url": "https://mp.weixin.qq.com/s?__biz=Bz1&mid=M1&idx=2"},
            {"title": "No link", "content_url": ""},
            {"title": "No identity", "content_url": "https://mp.weixin.qq.com/s/short"},
            _msg("Kept", "M1", 5),
        ],
    )

    units = extract_units([entry])

    assert [unit.title for unit in units] == ["Main", "Kept"]


def test_every_unit_identity_matches_its_link():
    entries = [
        _entry(_msg("A", "M1", 1), [_msg("B", "M1", 2)], ts=1500000000),
        _entry(_msg("C", "M2", 1, biz="Bz2"), ts=1500086400),
    ]

    units = extract_units(entries)

    assert len({unit.id for unit in units}) == len(units) == 3
    for unit in units:
        assert unit.id == parse_identity(unit.link)


def test_malformed_timestamp_keeps_units_without_publish_time():
    entries = [
        _entry(_msg("Blank time", "M1", 1), ts=""),
        _entry(_msg("Text time", "M2", 1), ts="abc"),
        _entry(_msg("Good time", "M3", 1)),
    ]

    units = extract_units(entries)

    assert [unit.title for unit in units] == ["Blank time", "Text time", "Good time"]
    assert [unit.publish_at for unit in units] == [None, None, "2017-07-14T02:40:00+00:00"]
