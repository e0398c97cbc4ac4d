"""
Base document model shared by every MongoDB collection.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field


class MongoDocument(BaseModel):
    """
    Base document model representing the MongoDB document structure.
    Subclasses declare their fields; timestamps are assigned on construction.
    """
    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        use_enum_values=True,
    )

    id: Optional[ObjectId] = Field(None, alias="_id", description="Document ID")
    created_at: datetime = Field(default_factory=datetime.utcnow, description="Creation timestamp")
    updated_at: datetime = Field(default_factory=datetime.utcnow, description="Last update timestamp")

    def to_mongo(self) -> Dict[str, Any]:
        """Dump the document for insert_one, leaving _id to the driver when unset."""
        doc = self.model_dump(by_alias=True)
        if doc.get("_id") is None:
            doc.pop("_id", None)
        return doc
