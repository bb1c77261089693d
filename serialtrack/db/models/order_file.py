# File: serialtrack/db/models/order_file.py

import uuid

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String

from serialtrack.db.models.base import AbstractBase, TimestampMixin


class OrderFile(AbstractBase, TimestampMixin):
    """
    Metadata for a document attached to an order.

    The file body lives on disk under ``storage_path``; the order row keeps
    only ``file_id`` in the slot matching ``file_type``.

    Every upload of the same ``file_type`` for an order is kept as a new
    ``version``; only one version per order and type is active at a time.
    """

    __tablename__ = "order_files"

    file_id = Column(String(36), unique=True, nullable=False, default=lambda: str(uuid.uuid4()))
    order_number = Column(String(100), index=True, nullable=False)
    file_type = Column(String(50), nullable=False)
    filename = Column(String(255), nullable=False)
    original_filename = Column(String(255), nullable=False)
    content_type = Column(String(100), nullable=False)
    size = Column(Integer, nullable=False, default=0)
    checksum = Column(String(255))
    storage_path = Column(String(512), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    version = Column(Integer, nullable=False, default=1)
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    def __repr__(self):
        return f"OrderFile(file_id={self.file_id}, order_number={self.order_number}, file_type={self.file_type}, version={self.version})"
