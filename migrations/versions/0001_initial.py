"""initial tables: catalog, service days, time slots, orders

Revision ID: 0001
Revises:
Create Date: 2026-01-14

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001'
down_revision = None
branch_labels = None
depends_on = None

ORDER_STATUSES = ('pending', 'confirmed', 'ready', 'picked_up', 'rejected')


def upgrade():
    order_status = sa.Enum(*ORDER_STATUSES, name='order_status')

    bind = op.get_bind()
    if bind.dialect.name != "sqlite":
        order_status.create(bind, checkfirst=True)

    op.create_table('users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('nickname', sa.String(100), nullable=True),
        sa.Column('role', sa.String(20), nullable=False, server_default='USER'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('1')),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table('ingredients',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('code', sa.String(10), nullable=True),
        sa.Column('category', sa.String(20), nullable=False),
        sa.Column('is_available', sa.Boolean(), nullable=False, server_default=sa.text('1')),
    )

    op.create_table('service_days',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('day', sa.Date(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('1')),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('max_orders', sa.Integer(), nullable=False),
        sa.Column('max_time', sa.Integer(), nullable=False, server_default='30'),
        sa.Column('location', sa.String(255), nullable=True),
        sa.Column('last_daily_number', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('max_orders > 0', name='ck_service_day_max_orders_positive'),
    )
    op.create_index('ix_service_days_day', 'service_days', ['day'], unique=True)

    op.create_table('time_slots',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('service_day_id', sa.Integer(),
                  sa.ForeignKey('service_days.id', ondelete='CASCADE'), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.UniqueConstraint('service_day_id', 'start_time', name='uq_time_slot_day_start'),
    )
    op.create_index('ix_time_slot_day', 'time_slots', ['service_day_id'])

    op.create_table('orders',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('time_slot_id', sa.Integer(),
                  sa.ForeignKey('time_slots.id', ondelete='CASCADE'), nullable=False),
        sa.Column('service_day_id', sa.Integer(),
                  sa.ForeignKey('service_days.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', order_status, nullable=False, server_default='pending'),
        sa.Column('daily_number', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('service_day_id', 'daily_number', name='uq_order_day_number'),
    )
    op.create_index('ix_orders_user_id', 'orders', ['user_id'])
    op.create_index('ix_order_slot_status', 'orders', ['time_slot_id', 'status'])

    op.create_table('order_ingredients',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('category', sa.String(20), nullable=False),
    )
    op.create_index('ix_order_ingredients_order_id', 'order_ingredients', ['order_id'])


def downgrade():
    op.drop_index('ix_order_ingredients_order_id', table_name='order_ingredients')
    op.drop_table('order_ingredients')
    op.drop_index('ix_order_slot_status', table_name='orders')
    op.drop_index('ix_orders_user_id', table_name='orders')
    op.drop_table('orders')
    op.drop_index('ix_time_slot_day', table_name='time_slots')
    op.drop_table('time_slots')
    op.drop_index('ix_service_days_day', table_name='service_days')
    op.drop_table('service_days')
    op.drop_table('ingredients')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')

    bind = op.get_bind()
    if bind.dialect.name != "sqlite":
        sa.Enum(name='order_status').drop(bind, checkfirst=True)
