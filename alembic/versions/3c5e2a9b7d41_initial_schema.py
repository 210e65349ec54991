"""initial_schema

Revision ID: 3c5e2a9b7d41
Revises:
Create Date: 2026-10-19 09:12:44.118302

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = '3c5e2a9b7d41'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('firebase_uid', sa.String(length=128), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('display_name', sa.String(length=200), nullable=True),
        sa.Column('email_verified', sa.Boolean(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_users_firebase_uid', 'users', ['firebase_uid'], unique=True)

    op.create_table(
        'saved_plants',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('firebase_uid', sa.String(length=128), nullable=False),
        sa.Column('trefle_id', sa.Integer(), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('scientific_name', sa.String(length=255), nullable=False),
        sa.Column('common_name', sa.String(length=255), nullable=True),
        sa.Column('family', sa.String(length=200), nullable=True),
        sa.Column('family_common_name', sa.String(length=200), nullable=True),
        sa.Column('genus', sa.String(length=200), nullable=True),
        sa.Column('image_url', sa.Text(), nullable=True),
        sa.Column('year', sa.Integer(), nullable=True),
        sa.Column('author', sa.String(length=255), nullable=True),
        sa.Column('bibliography', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=50), nullable=True),
        sa.Column('rank', sa.String(length=50), nullable=True),
        sa.Column('synonyms', sa.JSON(), nullable=False),
        sa.Column('nickname', sa.String(length=200), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('location', sa.String(length=200), nullable=True),
        sa.Column('planted_date', sa.Date(), nullable=True),
        sa.Column('harvest_date', sa.Date(), nullable=True),
        sa.Column('photos', sa.JSON(), nullable=False),
        sa.Column('growth_stages', sa.JSON(), nullable=False),
        sa.Column('care_reminders', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('date_added', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('firebase_uid', 'trefle_id', name='uq_saved_plant_user_plant'),
    )
    op.create_index('ix_saved_plants_user_active', 'saved_plants', ['firebase_uid', 'is_active'])
    op.create_index('ix_saved_plants_trefle_id', 'saved_plants', ['trefle_id'])

    op.create_table(
        'favorite_plants',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('firebase_uid', sa.String(length=128), nullable=False),
        sa.Column('trefle_id', sa.Integer(), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('scientific_name', sa.String(length=255), nullable=False),
        sa.Column('common_name', sa.String(length=255), nullable=True),
        sa.Column('family', sa.String(length=200), nullable=True),
        sa.Column('genus', sa.String(length=200), nullable=True),
        sa.Column('image_url', sa.Text(), nullable=True),
        sa.Column('date_added', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('firebase_uid', 'trefle_id', name='uq_favorite_user_plant'),
    )
    op.create_index('ix_favorite_plants_firebase_uid', 'favorite_plants', ['firebase_uid'])

    op.create_table(
        'plant_searches',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('firebase_uid', sa.String(length=128), nullable=False),
        sa.Column('query', sa.String(length=255), nullable=False),
        sa.Column('results_count', sa.Integer(), nullable=True),
        sa.Column('search_date', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_plant_searches_user_date', 'plant_searches', ['firebase_uid', 'search_date'])


def downgrade() -> None:
    op.drop_index('ix_plant_searches_user_date', table_name='plant_searches')
    op.drop_table('plant_searches')
    op.drop_index('ix_favorite_plants_firebase_uid', table_name='favorite_plants')
    op.drop_table('favorite_plants')
    op.drop_index('ix_saved_plants_trefle_id', table_name='saved_plants')
    op.drop_index('ix_saved_plants_user_active', table_name='saved_plants')
    op.drop_table('saved_plants')
    op.drop_index('ix_users_firebase_uid', table_name='users')
    op.drop_table('users')
