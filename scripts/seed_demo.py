#!/usr/bin/env python3
"""
Seed script to create demo catalog, coupons and staff accounts
"""

import asyncio
from datetime import datetime, timedelta


CATEGORIES = [
    ("Blood Tests", "blood-tests", "droplet"),
    ("Diabetes", "diabetes", "candy"),
    ("Heart Health", "heart-health", "heart"),
    ("Thyroid", "thyroid", "butterfly"),
    ("Organ Function", "organ-function", "lungs"),
    ("Vitamins", "vitamins", "sun"),
]

# name, slug, category slug, price, discount price, report time
CATALOG = [
    ("Complete Blood Count (CBC)", "complete-blood-count-cbc", "blood-tests", 29900, 19900, "24 hours"),
    ("Lipid Profile", "lipid-profile", "heart-health", 79900, 59900, "24 hours"),
    ("Thyroid Function Test (TSH, T3, T4)", "thyroid-function-test", "thyroid", 119900, 89900, "48 hours"),
    ("HbA1c (Diabetes)", "hba1c-diabetes", "diabetes", 59900, 44900, "24 hours"),
    ("Liver Function Test (LFT)", "liver-function-test", "organ-function", 89900, 69900, "24 hours"),
    ("Kidney Function Test (KFT)", "kidney-function-test", "organ-function", 84900, 64900, "24 hours"),
    ("Fasting Blood Sugar (FBS)", "fasting-blood-sugar", "diabetes", 19900, 14900, "12 hours"),
    ("Vitamin D Test", "vitamin-d-test", "vitamins", 99900, 79900, "48 hours"),
]

FASTING = {"lipid-profile", "fasting-blood-sugar"}


async def seed_demo_data():
    """Seed demo data for development"""
    from labflow.database import SessionLocal, engine, Base
    from labflow.models import (
        CatalogKind,
        Category,
        Coupon,
        DiscountType,
        LabTest,
        User,
        UserRole,
    )
    from sqlalchemy import select

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with SessionLocal() as db:
        # Check if demo catalog already exists
        result = await db.execute(
            select(LabTest).where(LabTest.slug == CATALOG[0][1])
        )
        existing = result.scalar_one_or_none()

        if existing:
            print("Demo data already exists. Skipping...")
            return

        print("Creating categories...")
        categories = {}
        for name, slug, icon in CATEGORIES:
            categories[slug] = Category(name=name, slug=slug, icon=icon, is_active=True)
            db.add(categories[slug])

        print("Creating catalog...")
        for name, slug, category_slug, price, discount_price, report_time in CATALOG:
            db.add(LabTest(
                name=name,
                slug=slug,
                category=categories[category_slug],
                kind=CatalogKind.TEST,
                price_paise=price,
                discount_price_paise=discount_price,
                preparation_instructions="10-12 hours fasting required" if slug in FASTING else None,
                report_time=report_time,
                is_active=True,
            ))

        print("Creating coupons...")
        now = datetime.utcnow()
        db.add(Coupon(
            code="WELCOME25",
            description="Welcome discount for new users",
            discount_type=DiscountType.PERCENTAGE,
            discount_value=25,
            min_order_paise=50000,
            max_discount_paise=50000,
            valid_from=now,
            valid_to=now + timedelta(days=30),
            usage_limit=1000,
            used_count=0,
        ))
        db.add(Coupon(
            code="HEALTH50",
            description="Flat Rs 50 off on orders above Rs 1000",
            discount_type=DiscountType.FIXED,
            discount_value=5000,
            min_order_paise=100000,
            valid_from=now,
            valid_to=now + timedelta(days=60),
            usage_limit=500,
            used_count=0,
        ))

        print("Creating staff accounts...")
        db.add(User(
            phone="+919000000001",
            name="Admin User",
            email="admin@labflow.local",
            role=UserRole.ADMIN,
        ))
        db.add(User(
            phone="+919000000002",
            name="Field Agent",
            role=UserRole.HOME_VISIT_AGENT,
        ))

        await db.commit()

        print(f"""
Demo data created successfully!

Catalog: {len(CATEGORIES)} categories, {len(CATALOG)} tests created

Users (log in with OTP):
  Admin: +919000000001
  Agent: +919000000002

Coupons: WELCOME25, HEALTH50
""")


if __name__ == "__main__":
    asyncio.run(seed_demo_data())
