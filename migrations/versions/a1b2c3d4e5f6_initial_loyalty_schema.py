"""Initial loyalty schema: shops, clients, registrations, rewards, partners, gifts.

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a1b2c3d4e5f6'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'shops',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('shop_name', sa.String(255), nullable=False),
        sa.Column('nfc_tag_ids', sa.JSON(), nullable=True),
        sa.Column('new_client_points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('new_client_rule_active', sa.Boolean(), nullable=True, server_default=sa.true()),
        sa.Column('standard_client_points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('vip_client_points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('vip_visit_threshold', sa.Integer(), nullable=True),
        sa.Column('vip_rule_active', sa.Boolean(), nullable=True, server_default=sa.false()),
        sa.Column('cooldown_seconds', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'clients',
        sa.Column('id', sa.String(128), primary_key=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('first_name', sa.String(100), nullable=True),
        sa.Column('last_name', sa.String(100), nullable=True),
        sa.Column('gender', sa.Integer(), nullable=True),
        sa.Column('phone', sa.String(30), nullable=True),
        sa.Column('postal_code', sa.String(20), nullable=True),
        sa.Column('address', sa.String(500), nullable=True),
        sa.Column('birthday', sa.Date(), nullable=True),
        sa.Column('image_url', sa.String(500), nullable=True),
        sa.Column('image_valid', sa.Boolean(), nullable=True),
        sa.Column('push_tokens', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'registrations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('client_id', sa.String(128), sa.ForeignKey('clients.id'), nullable=False),
        sa.Column('shop_id', sa.String(64), sa.ForeignKey('shops.id'), nullable=False),
        sa.Column('client_num', sa.Integer(), nullable=True),
        sa.Column('points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('nb_visit', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_visit', sa.DateTime(), nullable=True),
        sa.Column('first_name', sa.String(100), nullable=True),
        sa.Column('last_name', sa.String(100), nullable=True),
        sa.Column('gender', sa.Integer(), nullable=True),
        sa.Column('phone', sa.String(30), nullable=True),
        sa.Column('postal_code', sa.String(20), nullable=True),
        sa.Column('address', sa.String(500), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('birthday', sa.Date(), nullable=True),
        sa.Column('image_url', sa.String(500), nullable=True),
        sa.Column('image_valid', sa.Boolean(), nullable=True),
        sa.Column('notifications_active', sa.Boolean(), nullable=True, server_default=sa.true()),
        sa.Column('last_visit_notification_received', sa.Boolean(), nullable=True, server_default=sa.false()),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('client_id', 'shop_id', name='uq_registration_client_shop'),
        sa.UniqueConstraint('shop_id', 'client_num', name='uq_registration_shop_client_num'),
        sa.CheckConstraint('points >= 0', name='ck_registration_points_non_negative'),
        sa.CheckConstraint('nb_visit >= 0', name='ck_registration_nb_visit_non_negative'),
    )
    op.create_index('ix_registrations_shop_birthday', 'registrations', ['shop_id', 'birthday'])

    op.create_table(
        'scan_history',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('shop_id', sa.String(64), sa.ForeignKey('shops.id'), nullable=False),
        sa.Column('client_id', sa.String(128), sa.ForeignKey('clients.id'), nullable=False),
        sa.Column('tier', sa.String(20), nullable=True),
        sa.Column('points_awarded', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_scan_history_shop_created', 'scan_history', ['shop_id', 'created_at'])

    op.create_table(
        'rewards',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('shop_id', sa.String(64), sa.ForeignKey('shops.id'), nullable=False),
        sa.Column('points', sa.Integer(), nullable=False),
        sa.Column('value', sa.String(255), nullable=False),
        sa.Column('description', sa.String(500), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('points >= 0', name='ck_reward_points_non_negative'),
    )

    op.create_table(
        'partner_links',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('shop_a_id', sa.String(64), sa.ForeignKey('shops.id'), nullable=False),
        sa.Column('shop_b_id', sa.String(64), sa.ForeignKey('shops.id'), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('active_a', sa.Boolean(), nullable=True),
        sa.Column('reward_selected_a', sa.JSON(), nullable=True),
        sa.Column('active_b', sa.Boolean(), nullable=True),
        sa.Column('reward_selected_b', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('shop_a_id', 'shop_b_id', name='uq_partner_link_pair'),
    )

    op.create_table(
        'gifts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('client_id', sa.String(128), sa.ForeignKey('clients.id'), nullable=False),
        sa.Column('collection_id', sa.String(255), nullable=False),
        sa.Column('shop_id', sa.String(64), sa.ForeignKey('shops.id'), nullable=False),
        sa.Column('gift_type', sa.String(20), nullable=False),
        sa.Column('value', sa.String(255), nullable=True),
        sa.Column('description', sa.String(500), nullable=True),
        sa.Column('data', sa.JSON(), nullable=True),
        sa.Column('is_used', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('used_at', sa.DateTime(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('client_id', 'collection_id', name='uq_gift_client_collection'),
    )

    op.create_table(
        'redemption_records',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('client_id', sa.String(128), sa.ForeignKey('clients.id'), nullable=False),
        sa.Column('shop_id', sa.String(64), sa.ForeignKey('shops.id'), nullable=False),
        sa.Column('shop_name', sa.String(255), nullable=True),
        sa.Column('reward_id', sa.Integer(), sa.ForeignKey('rewards.id'), nullable=True),
        sa.Column('gift_id', sa.Integer(), sa.ForeignKey('gifts.id'), nullable=True),
        sa.Column('gift_type', sa.String(20), nullable=True),
        sa.Column('snapshot', sa.JSON(), nullable=True),
        sa.Column('previous_points', sa.Integer(), nullable=True),
        sa.Column('total_points', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_redemption_records_client', 'redemption_records', ['client_id', 'id'])


def downgrade():
    op.drop_index('ix_redemption_records_client', table_name='redemption_records')
    op.drop_table('redemption_records')
    op.drop_table('gifts')
    op.drop_table('partner_links')
    op.drop_table('rewards')
    op.drop_index('ix_scan_history_shop_created', table_name='scan_history')
    op.drop_table('scan_history')
    op.drop_index('ix_registrations_shop_birthday', table_name='registrations')
    op.drop_table('registrations')
    op.drop_table('clients')
    op.drop_table('shops')
