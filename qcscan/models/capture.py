from __future__ import annotations

from sqlalchemy import REAL, Column, ForeignKey, Index, Integer, Text, text

from qcscan.db.session import Base


class Template(Base):
    __tablename__ = "templates"

    template_id = Column(Text, primary_key=True)
    version = Column(Text, nullable=False)
    roi_map_json = Column(Text, nullable=False)


class Image(Base):
    __tablename__ = "images"
    __table_args__ = (
        Index("idx_images_template_id", "template_id"),
        Index("idx_images_created_at", "created_at"),
    )

    img_id = Column(Text, primary_key=True)
    uri = Column(Text, nullable=False)
    rectified_uri = Column(Text, nullable=True)
    template_id = Column(Text, ForeignKey("templates.template_id"), nullable=True)
    homography = Column(Text, nullable=True)
    blur = Column(REAL, nullable=True)
    glare = Column(REAL, nullable=True)
    created_at = Column(Text, nullable=False)


class Record(Base):
    __tablename__ = "records"
    __table_args__ = (
        Index("idx_records_source_img_id", "source_img_id"),
        Index("idx_records_created_at", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    date = Column(Text, nullable=True)
    hour = Column(Text, nullable=True)
    site = Column(Text, nullable=True)
    form_type = Column(Text, nullable=True)
    model_code = Column(Text, nullable=True)
    input_L_mm = Column(Integer, nullable=True)
    input_W_mm = Column(Integer, nullable=True)
    input_T_mm = Column(Integer, nullable=True)
    input_count = Column(Integer, nullable=True)
    output_L_mm = Column(Integer, nullable=True)
    output_W_mm = Column(Integer, nullable=True)
    output_T_mm = Column(Integer, nullable=True)
    output_count = Column(Integer, nullable=True)
    qc_ok = Column(Integer, nullable=True)
    qc_ng = Column(Integer, nullable=True)
    operator_id = Column(Text, nullable=True)
    batch_no = Column(Text, nullable=True)
    line_id = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    img_ref = Column(Text, nullable=True)
    source_img_id = Column(Text, ForeignKey("images.img_id"), nullable=True)
    model_version = Column(Text, nullable=True)
    verified = Column(Integer, nullable=True, server_default=text("0"))
    created_at = Column(Text, nullable=False)


class RecognitionEvent(Base):
    __tablename__ = "recog_events"
    __table_args__ = (
        Index("idx_recog_events_img_id", "img_id"),
        Index("idx_recog_events_created_at", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    img_id = Column(Text, ForeignKey("images.img_id"), nullable=True)
    field_id = Column(Text, nullable=True)
    raw_text = Column(Text, nullable=True)
    value = Column(Text, nullable=True)
    conf = Column(REAL, nullable=True)
    corrected = Column(Integer, nullable=True, server_default=text("0"))
    created_at = Column(Text, nullable=True)
