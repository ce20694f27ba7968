"""
Hero carousel slides for the landing page.

order_index is kept dense (0..n-1): every insert, move and delete renumbers
the remaining slides.
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from nanoflows.core.database import get_db, execute_with_retry
from nanoflows.core.logging_config import logger
from nanoflows.models import HeroSlide
from nanoflows.modules.auth import require_admin
from nanoflows.schemas.auth import CurrentUser
from nanoflows.schemas.content import HeroSlideCreate, HeroSlideUpdate, HeroSlideResponse

router = APIRouter()

# Served while no slide has been created from the admin panel
DEFAULT_HERO_SLIDES = [
    {
        "id": "1",
        "variant": "default",
        "title": "Flowing Into",
        "highlight": "The Future",
        "subtitle": (
            "Experience seamless innovation with Nano Flows. We deliver cutting-edge AI-powered "
            "solutions that transform your digital presence through dynamic personalization and "
            "continuous evolution."
        ),
        "buttonText": "Get Started",
        "preHeading": "AI-Powered Innovation Platform",
        "primaryCtaLabel": "Get Started",
        "primaryCtaRoute": "/services",
        "secondaryCtaLabel": "Explore Solutions",
        "secondaryCtaRoute": "/products",
        "categories": [],
        "trustBadges": [],
        "services": [],
        "backgroundImage": "/nanoflows-image.png",
        "backgroundOverlay": "rgba(2, 6, 23, 0.78)",
        "orderIndex": 0,
    },
    {
        "id": "2",
        "variant": "services",
        "title": "Every Capability You Need in One Studio",
        "subtitle": "NanoFlows Services",
        "description": "",
        "categories": [],
        "trustBadges": [],
        "services": [
            {"label": "Custom Development", "description": "Web, mobile & API platforms", "route": "/services#custom-development"},
            {"label": "Cloud Solutions", "description": "Migrations, DevOps & microservices", "route": "/services#cloud-solutions"},
            {"label": "AI & ML Engineering", "description": "Intelligent automation & data models", "route": "/services#ai-machine-learning"},
            {"label": "Performance Optimization", "description": "Speed, reliability & scalability", "route": "/services#performance-optimization"},
            {"label": "Marketing & Campaigns", "description": "Growth marketing and brand reach", "route": "/services#social-media-campaigns"},
            {"label": "YouTube Promotions", "description": "Channel growth & video SEO", "route": "/services#youtube-promotions"},
        ],
        "backgroundImage": None,
        "backgroundOverlay": None,
        "orderIndex": 1,
    },
    {
        "id": "3",
        "variant": "showcase",
        "preHeading": "Welcome to NanoFlows",
        "heading": "Innovating Smarter Solutions with",
        "highlight": "Trusted Intelligence",
        "description": (
            "Engineering interactive and secure digital products across AI, automation, cloud, and "
            "data. Our pods blend strategy, design, and delivery to accelerate real business outcomes."
        ),
        "categories": ["AI", "IoT", "Digital Engineering", "Data Analytics", "Travel Tech", "Web & Cloud"],
        "primaryCtaLabel": "Consult our expert",
        "primaryCtaRoute": "/contact",
        "secondaryCtaLabel": "Explore services",
        "secondaryCtaRoute": "/services",
        "trustBadges": [],
        "services": [],
        "backgroundImage": None,
        "backgroundOverlay": "rgba(0, 0, 0, 0.72)",
        "orderIndex": 2,
    },
    {
        "id": "4",
        "variant": "showcase",
        "preHeading": "NanoFlows Academy",
        "heading": "Master In-Demand Skills with",
        "highlight": "E-Learning",
        "description": (
            "Transform your career with expert-led courses. Learn at your own pace with lifetime "
            "access, earn industry-recognized certificates, and join thousands of successful learners."
        ),
        "categories": ["Web Development", "AI & Machine Learning", "Cloud Computing", "Data Science", "DevOps", "Cybersecurity"],
        "primaryCtaLabel": "Start Learning",
        "primaryCtaRoute": "/elearning",
        "secondaryCtaLabel": "View All Courses",
        "secondaryCtaRoute": "/elearning#courses",
        "trustBadges": ["Industry Experts", "Certificates", "Lifetime Access"],
        "services": [],
        "backgroundImage": None,
        "backgroundOverlay": "rgba(4, 12, 27, 0.74)",
        "orderIndex": 3,
    },
    {
        "id": "5",
        "variant": "showcase",
        "preHeading": "AI-Powered Productivity",
        "heading": "Supercharge Your Workflow with",
        "highlight": "AI Tools",
        "description": (
            "Discover a curated collection of the most powerful AI tools. From content creation to "
            "data analysis, code generation to image synthesis, find the perfect tool for every task."
        ),
        "categories": ["Text Generation", "Image Creation", "Code Assistant", "Audio & Video", "Data Analysis", "Automation"],
        "primaryCtaLabel": "Explore AI Tools",
        "primaryCtaRoute": "/ai-tools",
        "secondaryCtaLabel": "Browse Categories",
        "secondaryCtaRoute": "/ai-tools#categories",
        "trustBadges": ["Free Tools", "Premium Options", "Expert Curated"],
        "services": [],
        "backgroundImage": None,
        "backgroundOverlay": "rgba(3, 7, 18, 0.8)",
        "orderIndex": 4,
    },
    {
        "id": "6",
        "variant": "showcase",
        "preHeading": "NanoFlows Store",
        "heading": "Premium Digital Products for",
        "highlight": "E-Commerce",
        "description": (
            "Shop our exclusive collection of digital products, templates, and solutions. Built with "
            "cutting-edge technology to accelerate your business growth and digital transformation."
        ),
        "categories": ["Templates", "UI Kits", "Plugins", "Source Code", "Digital Assets", "Business Tools"],
        "primaryCtaLabel": "Visit Shop",
        "primaryCtaRoute": "/shop",
        "secondaryCtaLabel": "View Best Sellers",
        "secondaryCtaRoute": "/shop#featured",
        "trustBadges": ["Secure Checkout", "Instant Download", "Premium Support"],
        "services": [],
        "backgroundImage": None,
        "backgroundOverlay": "rgba(3, 7, 18, 0.78)",
        "orderIndex": 5,
    },
]


def insertion_index(ordered_ids: List[str], position: str, reference_id: Optional[str]) -> int:
    """
    Where a slide lands among the others.

    before/after with an unknown (or missing) reference fall back to the end.
    """
    if position == "start":
        return 0
    if position in ("before", "after") and reference_id in ordered_ids:
        index = ordered_ids.index(reference_id)
        return index if position == "before" else index + 1
    return len(ordered_ids)


async def _ordered_slides(db: AsyncSession) -> List[HeroSlide]:
    result = await execute_with_retry(
        db, select(HeroSlide).order_by(HeroSlide.order_index, HeroSlide.created_at)
    )
    return list(result.scalars().all())


def _renumber(slides: List[HeroSlide]) -> None:
    for index, slide in enumerate(slides):
        slide.order_index = index


async def _place(db: AsyncSession, slide: HeroSlide, position: str, reference_id: Optional[str]) -> None:
    others = [s for s in await _ordered_slides(db) if s.id != slide.id]
    index = insertion_index([s.id for s in others], position, reference_id)
    others.insert(index, slide)
    _renumber(others)


@router.get("")
async def get_hero_slides(db: AsyncSession = Depends(get_db)):
    slides = await _ordered_slides(db)
    if not slides:
        return {"slides": DEFAULT_HERO_SLIDES}
    return {"slides": [HeroSlideResponse.model_validate(s) for s in slides]}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_hero_slide(
    slide_data: HeroSlideCreate,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    values = slide_data.model_dump(exclude={"position", "reference_slide_id"})
    slide = HeroSlide(**values)
    db.add(slide)
    await db.flush()

    await _place(db, slide, slide_data.position, slide_data.reference_slide_id)
    await db.commit()
    await db.refresh(slide)

    logger.info(f"[HeroSlides] Slide {slide.id} created at position {slide.order_index}")
    return {"slide": HeroSlideResponse.model_validate(slide)}


@router.put("/{slide_id}")
async def update_hero_slide(
    slide_id: str,
    slide_data: HeroSlideUpdate,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    result = await execute_with_retry(db, select(HeroSlide).where(HeroSlide.id == slide_id))
    slide = result.scalar_one_or_none()
    if not slide:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Slide not found")

    updates = slide_data.model_dump(exclude_unset=True, exclude={"position", "reference_slide_id"})
    for field, value in updates.items():
        setattr(slide, field, value)

    if slide_data.position:
        await _place(db, slide, slide_data.position, slide_data.reference_slide_id)

    await db.commit()
    await db.refresh(slide)

    return {"slide": HeroSlideResponse.model_validate(slide)}


@router.delete("/{slide_id}")
async def delete_hero_slide(
    slide_id: str,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    result = await execute_with_retry(db, select(HeroSlide).where(HeroSlide.id == slide_id))
    slide = result.scalar_one_or_none()
    if not slide:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Slide not found")

    await db.delete(slide)
    await db.flush()

    _renumber(await _ordered_slides(db))
    await db.commit()

    return {"message": "Slide deleted successfully"}
