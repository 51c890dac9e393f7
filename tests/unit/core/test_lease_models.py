"""
租约领域模型单元测试
"""

import json
from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from leasecore.domain.lease import LeaseBody, LeaseLost, LeaseResource, LeaseWon


class TestLeaseBody:
    """租约内容测试"""

    def test_default_is_unowned(self):
        """测试默认无人持有"""
        body = LeaseBody()

        assert body.owner == ""
        assert body.time is None
        assert body.is_owned is False

    def test_wire_format(self):
        """测试序列化字段"""
        body = LeaseBody(owner="node-A", time=datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC))

        data = json.loads(body.to_bytes())

        assert set(data) == {"owner", "time"}
        assert data["owner"] == "node-A"
        assert data["time"].startswith("2026-01-02T03:04:05")

    def test_null_owner_is_unowned(self):
        """测试 owner 为 null 时视为无人持有"""
        body = LeaseBody.from_bytes(b'{"owner": null, "time": null}')

        assert body.owner == ""

    def test_naive_time_is_utc(self):
        """测试无时区时间按 UTC 处理"""
        body = LeaseBody(owner="node-A", time=datetime(2026, 1, 2, 3, 4, 5))

        assert body.time.tzinfo is not None
        assert body.time == datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC)

    def test_unknown_fields_ignored(self):
        """测试忽略未知字段"""
        body = LeaseBody.from_bytes(b'{"owner": "node-A", "version": 3}')

        assert body.owner == "node-A"

    @pytest.mark.parametrize(
        "payload",
        [b"", b"not json", b"[]", b'{"owner": 42}', b'{"time": "yesterday"}'],
    )
    def test_invalid_payload(self, payload):
        """测试非法内容抛出 ValidationError"""
        with pytest.raises(ValidationError):
            LeaseBody.from_bytes(payload)

    def test_frozen(self):
        """测试不可变"""
        body = LeaseBody(owner="node-A")

        with pytest.raises(ValidationError):
            body.owner = "node-B"


class TestUpdateResult:
    """更新结果测试"""

    def test_won_and_lost_are_distinct(self):
        """测试两种结果可以按类型分支"""
        resource = LeaseResource(body=LeaseBody(owner="node-A"), version='"etag-1"')

        def describe(result):
            match result:
                case LeaseWon(resource=r):
                    return f"won:{r.owner}"
                case LeaseLost(resource=r):
                    return f"lost:{r.owner}"

        assert describe(LeaseWon(resource)) == "won:node-A"
        assert describe(LeaseLost(resource)) == "lost:node-A"
        assert LeaseWon(resource).won is True
        assert LeaseLost(resource).won is False

    def test_resource_delegates_to_body(self):
        """测试快照属性"""
        now = datetime.now(UTC)
        resource = LeaseResource(body=LeaseBody(owner="node-A", time=now), version='"etag-1"')

        assert resource.owner == "node-A"
        assert resource.time == now
        assert resource.version == '"etag-1"'
