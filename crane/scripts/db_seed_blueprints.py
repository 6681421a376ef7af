"""
Database Seeder.

Run this script to populate the database with the sample blueprints
defined in data/sample_blueprints.py.

Usage:
    python -m crane.scripts.db_seed_blueprints

Existing rows with the same blueprint ID are updated in place.
"""

from sqlmodel import Session

from crane.config import settings
from crane.data.sample_blueprints import SAMPLE_BLUEPRINTS
from crane.domain.models import Blueprint, utc_now
from crane.infrastructure.database.connection import get_engine, init_db
from crane.infrastructure.database.tables import BlueprintDBModel


def seed_blueprints(engine=None):
    engine = engine or get_engine()
    print(f"Initializing Database Connection ({settings.DATABASE_URL})...")

    init_db(engine)

    with Session(engine) as session:
        print(f"Found {len(SAMPLE_BLUEPRINTS)} blueprints to seed.")

        for bp_id, blueprint in SAMPLE_BLUEPRINTS.items():
            print(f"Processing blueprint: {bp_id}")
            now = utc_now()

            # Upsert logic: update existing records or insert new ones.
            existing_bp = session.get(BlueprintDBModel, bp_id)
            created_at = (
                Blueprint.model_validate(existing_bp.blueprint_data).created_at if existing_bp else now
            ) or now

            # Serialize the blueprint to a JSON-compatible dict.
            bp_data_json = blueprint.model_copy(
                update={"created_at": created_at, "updated_at": now}
            ).model_dump(mode="json")

            if existing_bp:
                print("--> Updating existing record.")
                existing_bp.name = blueprint.name
                existing_bp.organization_id = blueprint.organization_id
                existing_bp.blueprint_data = bp_data_json
                existing_bp.updated_at = now
                session.add(existing_bp)
            else:
                print("--> Creating new record.")
                new_bp = BlueprintDBModel(
                    blueprint_id=bp_id,
                    organization_id=blueprint.organization_id,
                    name=blueprint.name,
                    blueprint_data=bp_data_json,
                    created_at=now,
                    updated_at=now,
                )
                session.add(new_bp)

        session.commit()
        print("Blueprints seeding complete.")


if __name__ == "__main__":
    seed_blueprints()
