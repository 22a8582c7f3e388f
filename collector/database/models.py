import datetime
from dataclasses import dataclass
from typing import Any, Dict, Optional

@dataclass(frozen=True)
class Reading:
    id: int
    device_id: str
    device_name: str
    value: str
    observed_at: datetime.datetime
    created_at: Optional[datetime.datetime] = None
    updated_at: Optional[datetime.datetime] = None

    @classmethod
    def from_record(cls, row) -> "Reading":
        return cls(
            id=row["id"],
            device_id=row["device_id"],
            device_name=row["device_name"],
            value=row["value"],
            observed_at=row["observed_at"],
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "device_id": self.device_id,
            "device_name": self.device_name,
            "data_value": self.value,
            "timestamp": self.observed_at.isoformat() if self.observed_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
