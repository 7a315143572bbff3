"""Product model holding one observed search listing per row."""

from datetime import date
from typing import Optional

from sqlalchemy import Date, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from pricecrawler.models.base import Base


class Product(Base):
    """Product listing observed on a given day.

    Rows are only ever appended by the crawler; prices are stored exactly
    as the site displayed them.
    """

    __tablename__ = "products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(Text, nullable=False)
    price: Mapped[str] = mapped_column(Text, nullable=False, comment="Current displayed price")
    old_price: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Previously displayed ('was') price, if shown"
    )
    link: Mapped[str] = mapped_column(Text, nullable=False)

    scraped_at: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        comment="Local calendar date the row was persisted"
    )

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, name='{self.name[:40]}', price='{self.price}', scraped_at={self.scraped_at})>"
