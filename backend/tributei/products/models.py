from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional, List

from sqlalchemy import ForeignKey, Integer, String, Text, Numeric, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship, declared_attr
from sqlalchemy.sql import func

from tributei.db.main import Base


class Product(Base):
    """
    Product model representing a catalog entry (Golden Record) of the tax catalog.
    Read-only for the tax engine; maintained by the catalog ingestion process.

    Attributes:
        id: Primary key (auto-incremented)
        name: Product description (column 'produto', nullable)
        ean: Barcode / GTIN (not nullable, may be empty or 'SEM GTIN')
        ncm: Tariff code, dot-grouped 'xxxx.xx.xx' (nullable, indexed)
        cest: Secondary classification code (nullable)
        category: Category label (nullable, engine falls back to 'Geral')
        price: Reference unit price (nullable, not always catalog-resident)
        created_at: Timestamp of creation (server default now())
        updated_at: Timestamp of last update (server default now(), onupdate=now())
        ibs: IBS tax rows (zero or one)
        cbs: CBS tax rows (zero or one)
    """
    __tablename__ = 'products'

    __table_args__ = (
        # Trigram index for 'ILIKE %text%' on produto lives in the SQL migration
        # (CREATE EXTENSION pg_trgm; gin_trgm_ops)
        Index('idx_products_ean', 'ean'),
        Index('idx_products_ncm', 'ncm'),
        {'comment': 'Tax catalog products (EAN / NCM / description)'}
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[Optional[str]] = mapped_column('produto', Text, nullable=True)
    ean: Mapped[str] = mapped_column(String(64), nullable=False, default='')
    ncm: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    cest: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
    ibs: Mapped[List['IbsTaxRow']] = relationship('IbsTaxRow', back_populates='product')
    cbs: Mapped[List['CbsTaxRow']] = relationship('CbsTaxRow', back_populates='product')


class TaxRowMixin:
    """
    Columns shared by the 'ibs' and 'cbs' tables.

    Rates are stored as text in mixed encodings ('18,5', '9%', '17.7').
    Two generations of column names coexist for the outbound fields:
    current (alqe_sai, red_alqe_sai, alqfe_sai) and legacy
    (alq_sai, red_alq_sai, alqf_sai).
    """
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    cst_saida: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    cclass_saida: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    alqe_sai: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    red_alqe_sai: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    alqfe_sai: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    alq_sai: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    red_alq_sai: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    alqf_sai: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    cst_entrada: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    cclass_entrada: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    alq_ent: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    red_alq_ent: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    alqf_ent: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    @declared_attr
    def product_id(cls) -> Mapped[Optional[int]]:
        return mapped_column(Integer, ForeignKey('products.id', ondelete='CASCADE'), nullable=True, index=True)


class IbsTaxRow(TaxRowMixin, Base):
    """IBS (state/municipal tax) row of a product."""
    __tablename__ = 'ibs'

    product: Mapped[Optional['Product']] = relationship('Product', back_populates='ibs')


class CbsTaxRow(TaxRowMixin, Base):
    """CBS (federal contribution) row of a product."""
    __tablename__ = 'cbs'

    product: Mapped[Optional['Product']] = relationship('Product', back_populates='cbs')
