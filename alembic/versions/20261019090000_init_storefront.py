from alembic import op
import sqlalchemy as sa

revision = "20261019090000"
down_revision = None

NOW = sa.text("(now() at time zone 'utc')")

order_status = sa.Enum(
    "PENDING", "PROCESSING", "PAID", "SHIPPED", "DELIVERED", "CANCELLED", "RETURNED", "REFUNDED",
    name="order_status",
)
registration_status = sa.Enum(
    "PENDING", "APPROVED", "REJECTED", "PAID", "CONFIRMED", "CANCELLED",
    name="registration_status",
)
event_status = sa.Enum("UPCOMING", "ACTIVE", "INACTIVE", "CANCELLED", "COMPLETED", name="event_status")

def _ts(name):
    return sa.Column(name, sa.DateTime(timezone=True), nullable=True)

def upgrade():
    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.String(length=64), index=True, nullable=False),
        sa.Column('status', order_status, nullable=False, server_default='PENDING'),
        sa.Column('shipping_fee', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('subtotal', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('discount', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('total', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('shipping_address', sa.JSON(), nullable=True),
        _ts('request_at'), _ts('approved_at'), _ts('paid_at'), _ts('shipped_at'),
        _ts('delivered_at'), _ts('cancelled_at'), _ts('returned_at'), _ts('refunded_at'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=NOW),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=NOW),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.CheckConstraint('subtotal >= 0', name='ck_orders_subtotal'),
        sa.CheckConstraint('total >= 0', name='ck_orders_total'),
        sa.CheckConstraint('shipping_fee >= 0', name='ck_orders_shipping_fee'),
    )
    op.create_table(
        'order_line_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id', ondelete='CASCADE'), index=True, nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('title_snapshot', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price', sa.BigInteger(), nullable=False),
        sa.Column('discount', sa.BigInteger(), nullable=False, server_default='0'),
        sa.CheckConstraint('quantity >= 1', name='ck_order_line_items_quantity'),
        sa.CheckConstraint('discount >= 0', name='ck_order_line_items_discount'),
        sa.CheckConstraint('discount <= price * quantity', name='ck_order_line_items_discount_max'),
    )
    op.create_table(
        'events',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('slug', sa.String(length=255), nullable=False, unique=True, index=True),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('location', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('starts_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('ends_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('price', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('status', event_status, nullable=False, server_default='UPCOMING'),
        sa.Column('total_seats', sa.Integer(), nullable=False),
        sa.Column('available_seats', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=NOW),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=NOW),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.CheckConstraint('available_seats >= 0', name='ck_events_available_seats_min'),
        sa.CheckConstraint('available_seats <= total_seats', name='ck_events_available_seats_max'),
        sa.CheckConstraint('price >= 0', name='ck_events_price'),
    )
    op.create_table(
        'event_registrations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('event_id', sa.Integer(), sa.ForeignKey('events.id'), index=True, nullable=False),
        sa.Column('user_id', sa.String(length=64), index=True, nullable=False),
        sa.Column('seats_reserved', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('price', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('discount', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('status', registration_status, nullable=False, server_default='PENDING'),
        _ts('request_at'), _ts('approved_at'), _ts('paid_at'), _ts('confirmed_at'), _ts('cancelled_at'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=NOW),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=NOW),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.CheckConstraint('seats_reserved >= 1', name='ck_event_registrations_seats'),
        sa.CheckConstraint('price >= 0', name='ck_event_registrations_price'),
        sa.CheckConstraint('discount >= 0', name='ck_event_registrations_discount'),
    )

def downgrade():
    op.drop_table('event_registrations')
    op.drop_table('events')
    op.drop_table('order_line_items')
    op.drop_table('orders')
    registration_status.drop(op.get_bind(), checkfirst=True)
    event_status.drop(op.get_bind(), checkfirst=True)
    order_status.drop(op.get_bind(), checkfirst=True)
