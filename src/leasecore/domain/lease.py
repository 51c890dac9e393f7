"""
租约领域模型

- LeaseBody: 写入对象存储的租约内容
- LeaseResource: 租约内容 + 后端分配的版本号（ETag）
- LeaseWon / LeaseLost: 条件写入的两种结果
"""

from dataclasses import dataclass
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

LEASE_CONTENT_TYPE = "application/json"


class LeaseBody(BaseModel):
    """租约内容

    owner 为空字符串表示租约无人持有。time 仅供调用方做 TTL 判断，
    本模块不解释它。
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    owner: str = Field(default="", description="持有者标识，空表示无人持有")
    time: datetime | None = Field(default=None, description="最近一次写入时间（UTC）")

    @field_validator("owner", mode="before")
    @classmethod
    def validate_owner(cls, v):
        return "" if v is None else v

    @field_validator("time")
    @classmethod
    def validate_time(cls, v):
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v

    @property
    def is_owned(self) -> bool:
        return bool(self.owner)

    def to_bytes(self) -> bytes:
        return self.model_dump_json().encode("utf-8")

    @classmethod
    def from_bytes(cls, payload: bytes) -> "LeaseBody":
        """解析租约内容，格式非法时抛出 pydantic.ValidationError"""
        return cls.model_validate_json(payload)


@dataclass(frozen=True)
class LeaseResource:
    """调用方可见的租约快照

    version 是后端在写入时分配的 ETag，只用于条件写入的相等比较。
    """

    body: LeaseBody
    version: str

    @property
    def owner(self) -> str:
        return self.body.owner

    @property
    def time(self) -> datetime | None:
        return self.body.time


@dataclass(frozen=True)
class LeaseWon:
    """条件写入成功，resource 为写入后的新租约"""

    resource: LeaseResource

    @property
    def won(self) -> bool:
        return True


@dataclass(frozen=True)
class LeaseLost:
    """条件写入冲突，resource 为后端当前的租约"""

    resource: LeaseResource

    @property
    def won(self) -> bool:
        return False


LeaseUpdateResult = LeaseWon | LeaseLost
