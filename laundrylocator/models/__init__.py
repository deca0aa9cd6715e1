"""
SQLAlchemy models for LaundryLocator.
"""
from __future__ import annotations

from sqlalchemy import JSON, Boolean, Column, DateTime, Float, ForeignKey, Integer, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()

JSONType = JSON().with_variant(JSONB(), "postgresql")

LISTING_TYPES = ("basic", "premium", "featured")
USER_ROLES = ("user", "owner", "admin")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(Text, nullable=False, unique=True, index=True)
    email = Column(Text, nullable=False, unique=True, index=True)
    password_hash = Column(Text, nullable=False)
    is_business_owner = Column(Boolean, default=False)
    role = Column(Text, nullable=False, default="user")
    stripe_customer_id = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Laundromat(Base):
    __tablename__ = "laundromats"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False)
    slug = Column(Text, nullable=False, unique=True, index=True)
    address = Column(Text, nullable=False)
    city = Column(Text, nullable=False, index=True)
    state = Column(Text, nullable=False, index=True)
    zip = Column(Text, default="")
    phone = Column(Text, default="")
    website = Column(Text)
    latitude = Column(Float)
    longitude = Column(Float)
    rating = Column(Float, default=0.0)
    review_count = Column(Integer, default=0)
    hours = Column(Text, default="Not specified")
    services = Column(JSONType, default=list)

    # Premium listing fields
    listing_type = Column(Text, default="basic")
    is_featured = Column(Boolean, default=False)
    is_premium = Column(Boolean, default=False)
    subscription_active = Column(Boolean, default=False)
    subscription_status = Column(Text)
    subscription_expiry = Column(DateTime(timezone=True))
    subscription_id = Column(Integer)
    featured_until = Column(DateTime(timezone=True))
    featured_rank = Column(Integer)
    promotional_text = Column(Text)
    amenities = Column(JSONType, default=list)
    machine_count = Column(JSONType, default=dict)
    photos = Column(JSONType, default=list)
    special_offers = Column(JSONType, default=list)
    payment_options = Column(JSONType, default=list)

    # Enrichment output
    seo_tags = Column(JSONType, default=list)
    short_summary = Column(Text)
    premium_score = Column(Integer, default=0)

    view_count = Column(Integer, default=0)
    last_viewed = Column(DateTime(timezone=True))
    verified = Column(Boolean, default=False)
    image_url = Column(Text)
    description = Column(Text)
    owner_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"))
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Review(Base):
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, autoincrement=True)
    laundry_id = Column(Integer, ForeignKey("laundromats.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Favorite(Base):
    __tablename__ = "favorites"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    laundry_id = Column(Integer, ForeignKey("laundromats.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class City(Base):
    __tablename__ = "cities"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False)
    state = Column(Text, nullable=False)
    slug = Column(Text, nullable=False, unique=True, index=True)
    laundry_count = Column(Integer, default=0)


class State(Base):
    __tablename__ = "states"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False)
    abbr = Column(Text, nullable=False, unique=True)
    slug = Column(Text, nullable=False, unique=True, index=True)
    laundry_count = Column(Integer, default=0)


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    laundry_id = Column(Integer, ForeignKey("laundromats.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    tier = Column(Text, nullable=False)
    amount = Column(Integer, nullable=False)
    billing_cycle = Column(Text, nullable=False)
    stripe_payment_intent_id = Column(Text, index=True)
    start_date = Column(DateTime(timezone=True))
    end_date = Column(DateTime(timezone=True))
    status = Column(Text, nullable=False, default="pending")
    auto_renew = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class LaundryTip(Base):
    __tablename__ = "laundry_tips"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(Text, nullable=False)
    slug = Column(Text, nullable=False, unique=True)
    description = Column(Text, nullable=False)
    content = Column(Text, nullable=False)
    category = Column(Text, nullable=False)
    image_url = Column(Text)
    tags = Column(JSONType, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class AdminNotification(Base):
    __tablename__ = "admin_notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    type = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default="unread")
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    laundry_id = Column(Integer, ForeignKey("laundromats.id", ondelete="CASCADE"), nullable=False)
    email = Column(Text)
    phone = Column(Text)
    data = Column(JSONType, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
