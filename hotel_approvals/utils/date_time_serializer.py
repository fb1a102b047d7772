from datetime import date, datetime
from typing import Any, Dict

def serialize_dates(data: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively convert date/datetime objects to ISO format strings"""
    def convert_value(value: Any) -> Any:
        if isinstance(value, datetime):
            return value.isoformat()
        elif isinstance(value, date):
            return value.isoformat()
        elif isinstance(value, dict):
            return serialize_dates(value)
        elif isinstance(value, list):
            return [convert_value(item) for item in value]
        return value

    serialized = {}
    for key, value in data.items():
        serialized[key] = convert_value(value)
    return serialized
