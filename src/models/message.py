"""エージェント間メール（gt mail）モデル。"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator


class Message(BaseModel):
    """gt mail inbox --json の 1 件。

    JSON 上のキーは from / to。Python 側では sender / recipient で扱う。
    null のフィールドは既定値として扱う。
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(default="", description="メッセージID")
    sender: str = Field(default="", alias="from", description="送信元アドレス")
    recipient: str = Field(default="", alias="to", description="宛先アドレス")
    subject: str = Field(default="", description="件名")
    body: str = Field(default="", description="本文")
    timestamp: datetime | None = Field(default=None, description="送信日時")
    read: bool = Field(default=False, description="既読フラグ")
    priority: str = Field(default="", description="優先度")
    type: str = Field(default="", description="メッセージ種別")

    @field_validator("*", mode="before")
    @classmethod
    def null_as_default(cls, value: Any, info: ValidationInfo) -> Any:
        if value is not None:
            return value
        return cls.model_fields[info.field_name].get_default(call_default_factory=True)
