"""
Marketing site content managed from the admin panel: hero carousel slides,
about page sections, the AI tools directory and the careers board.
"""

from sqlalchemy import Column, String, Boolean, DateTime, Integer, Text, JSON
from datetime import datetime

from nanoflows.core.database import Base
from nanoflows.core.types import GUID, generate_uuid


class HeroSlide(Base):
    __tablename__ = "hero_slides"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    variant = Column(String(50), default="default", nullable=False)  # default | services | showcase

    title = Column(String(255), nullable=True)
    highlight = Column(String(255), nullable=True)
    subtitle = Column(Text, nullable=True)
    button_text = Column(String(100), nullable=True)
    pre_heading = Column(String(255), nullable=True)
    heading = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)

    categories = Column(JSON, default=list)
    trust_badges = Column(JSON, default=list)
    services = Column(JSON, default=list)  # [{label, description, route}]

    primary_cta_label = Column(String(100), nullable=True)
    primary_cta_route = Column(String(255), nullable=True)
    secondary_cta_label = Column(String(100), nullable=True)
    secondary_cta_route = Column(String(255), nullable=True)

    background_image = Column(Text, nullable=True)
    background_overlay = Column(String(100), nullable=True)
    order_index = Column(Integer, default=0, nullable=False, index=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class AboutSection(Base):
    __tablename__ = "about_sections"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    section_type = Column(String(50), unique=True, index=True, nullable=False)  # hero, mission, team...
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=True)
    icon_name = Column(String(100), nullable=True)

    images = Column(JSON, default=list)  # [{image_url, title, description}]
    team_members = Column(JSON, default=list)  # [{name, role, image_url, portfolio_url}]
    company_logos = Column(JSON, default=list)  # [{company_name, logo_url, industry, icon_name}]

    order_index = Column(Integer, default=0, nullable=False)
    active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class AITool(Base):
    __tablename__ = "ai_tools"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String(100), nullable=False, index=True)
    color = Column(String(50), nullable=True)
    features = Column(JSON, default=list)
    pricing_type = Column(String(50), default="free", nullable=False, index=True)  # free | paid
    url = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Job(Base):
    __tablename__ = "jobs"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    title = Column(String(255), nullable=False)
    department = Column(String(100), nullable=False, index=True)
    location = Column(String(255), nullable=False)
    type = Column(String(50), default="Full-time", nullable=False)
    description = Column(Text, nullable=False)
    requirements = Column(JSON, default=list)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
