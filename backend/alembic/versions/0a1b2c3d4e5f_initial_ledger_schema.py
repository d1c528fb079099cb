"""initial ledger schema

Revision ID: 0a1b2c3d4e5f
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from chainledger.core.types import TokenAmount

revision: str = '0a1b2c3d4e5f'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

DEFAULT_NETWORKS = [
    {'name': 'Ethereum Mainnet', 'chain_id': 1, 'rpc_url': 'https://mainnet.infura.io/v3/',
     'explorer_url': 'https://etherscan.io', 'native_currency': 'ETH'},
    {'name': 'Polygon Mainnet', 'chain_id': 137, 'rpc_url': 'https://polygon-rpc.com',
     'explorer_url': 'https://polygonscan.com', 'native_currency': 'MATIC'},
    {'name': 'BSC Mainnet', 'chain_id': 56, 'rpc_url': 'https://bsc-dataseed.binance.org',
     'explorer_url': 'https://bscscan.com', 'native_currency': 'BNB'},
    {'name': 'Ethereum Sepolia', 'chain_id': 11155111, 'rpc_url': 'https://sepolia.infura.io/v3/',
     'explorer_url': 'https://sepolia.etherscan.io', 'native_currency': 'ETH'},
    {'name': 'Polygon Mumbai', 'chain_id': 80001, 'rpc_url': 'https://rpc-mumbai.maticvigil.com',
     'explorer_url': 'https://mumbai.polygonscan.com', 'native_currency': 'MATIC'},
]


def _timestamp(name):
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.func.now())


def upgrade() -> None:
    networks = op.create_table(
        'networks',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False, unique=True),
        sa.Column('chain_id', sa.BigInteger(), nullable=False, unique=True),
        sa.Column('rpc_url', sa.Text(), nullable=False),
        sa.Column('explorer_url', sa.Text(), nullable=True),
        sa.Column('native_currency', sa.String(length=10), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        _timestamp('created_at'),
        _timestamp('updated_at'),
    )

    op.create_table(
        'smart_contracts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('address', sa.String(length=42), nullable=False),
        sa.Column('network_id', sa.Integer(), sa.ForeignKey('networks.id'), nullable=False),
        sa.Column('abi', sa.Text(), nullable=False),
        sa.Column('bytecode', sa.Text(), nullable=True),
        sa.Column('version', sa.String(length=50), nullable=False, server_default='1.0.0'),
        sa.Column('contract_type', sa.String(length=50), nullable=False),
        sa.Column('is_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        _timestamp('deployed_at'),
        sa.Column('deployed_by', sa.String(length=255), nullable=True),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.UniqueConstraint('address', 'network_id', name='uq_contract_address_network'),
    )
    op.create_index('ix_smart_contracts_network_id', 'smart_contracts', ['network_id'])

    op.create_table(
        'wallets',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('address', sa.String(length=42), nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=False),
        sa.Column('wallet_type', sa.String(length=20), nullable=False, server_default='EOA'),
        sa.Column('is_custodial', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('encrypted_private_key', sa.Text(), nullable=True),
        sa.Column('public_key', sa.Text(), nullable=True),
        _timestamp('created_at'),
        _timestamp('last_used_at'),
        sa.CheckConstraint('is_custodial OR encrypted_private_key IS NULL', name='ck_wallet_custodial_key'),
    )
    op.create_index('ix_wallets_address', 'wallets', ['address'], unique=True)
    op.create_index('ix_wallets_user_id', 'wallets', ['user_id'])

    op.create_table(
        'tokens',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('contract_id', sa.Integer(), sa.ForeignKey('smart_contracts.id'), nullable=False),
        sa.Column('symbol', sa.String(length=20), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('decimals', sa.Integer(), nullable=False, server_default='18'),
        sa.Column('total_supply', TokenAmount(), nullable=True),
        sa.Column('max_supply', TokenAmount(), nullable=True),
        sa.Column('token_type', sa.String(length=20), nullable=False),
        sa.Column('metadata_uri', sa.Text(), nullable=True),
        sa.Column('is_mintable', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_burnable', sa.Boolean(), nullable=False, server_default=sa.true()),
        _timestamp('created_at'),
        sa.UniqueConstraint('contract_id', 'symbol', name='uq_token_contract_symbol'),
    )
    op.create_index('ix_tokens_symbol', 'tokens', ['symbol'])

    op.create_table(
        'token_balances',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('wallet_id', sa.Integer(), sa.ForeignKey('wallets.id'), nullable=False),
        sa.Column('token_id', sa.Integer(), sa.ForeignKey('tokens.id'), nullable=False),
        sa.Column('balance', TokenAmount(), nullable=False),
        _timestamp('updated_at'),
        sa.UniqueConstraint('wallet_id', 'token_id', name='uq_balance_wallet_token'),
        sa.CheckConstraint('balance >= 0', name='ck_balance_non_negative'),
    )
    op.create_index('ix_token_balances_wallet_id', 'token_balances', ['wallet_id'])

    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('hash', sa.String(length=66), nullable=False, unique=True),
        sa.Column('network_id', sa.Integer(), sa.ForeignKey('networks.id'), nullable=False),
        sa.Column('from_address', sa.String(length=42), nullable=False),
        sa.Column('to_address', sa.String(length=42), nullable=True),
        sa.Column('value', TokenAmount(), nullable=False),
        sa.Column('gas_price', TokenAmount(), nullable=True),
        sa.Column('gas_limit', sa.BigInteger(), nullable=True),
        sa.Column('gas_used', sa.BigInteger(), nullable=True),
        sa.Column('nonce', sa.BigInteger(), nullable=True),
        sa.Column('block_number', sa.BigInteger(), nullable=True),
        sa.Column('block_hash', sa.String(length=66), nullable=True),
        sa.Column('transaction_index', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('transaction_type', sa.String(length=20), nullable=False),
        sa.Column('contract_address', sa.String(length=42), nullable=True),
        sa.Column('logs', sa.JSON(), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        _timestamp('created_at'),
        sa.Column('confirmed_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_transactions_network_id', 'transactions', ['network_id'])
    op.create_index('ix_transactions_from_address', 'transactions', ['from_address'])
    op.create_index('ix_transactions_to_address', 'transactions', ['to_address'])

    op.create_table(
        'nft_metadata',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('token_id', sa.Integer(), sa.ForeignKey('tokens.id'), nullable=False),
        sa.Column('token_number', TokenAmount(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('image_url', sa.Text(), nullable=True),
        sa.Column('animation_url', sa.Text(), nullable=True),
        sa.Column('external_url', sa.Text(), nullable=True),
        sa.Column('attributes', sa.JSON(), nullable=True),
        sa.Column('owner_address', sa.String(length=42), nullable=True),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.UniqueConstraint('token_id', 'token_number', name='uq_nft_token_number'),
    )
    op.create_index('ix_nft_metadata_owner_address', 'nft_metadata', ['owner_address'])

    op.create_table(
        'blockchain_events',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('transaction_hash', sa.String(length=66), nullable=False),
        sa.Column('contract_address', sa.String(length=42), nullable=False),
        sa.Column('event_name', sa.String(length=255), nullable=False),
        sa.Column('event_data', sa.JSON(), nullable=False),
        sa.Column('block_number', sa.BigInteger(), nullable=False),
        sa.Column('log_index', sa.Integer(), nullable=False),
        sa.Column('network_id', sa.Integer(), sa.ForeignKey('networks.id'), nullable=False),
        _timestamp('created_at'),
    )
    op.create_index('ix_blockchain_events_transaction_hash', 'blockchain_events', ['transaction_hash'])
    op.create_index('ix_blockchain_events_block_number', 'blockchain_events', ['block_number'])
    op.create_index('idx_events_contract_name', 'blockchain_events', ['contract_address', 'event_name'])

    op.create_table(
        'marketplace_listings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('token_id', sa.Integer(), sa.ForeignKey('tokens.id'), nullable=False),
        sa.Column('token_number', TokenAmount(), nullable=False),
        sa.Column('seller_address', sa.String(length=42), nullable=False),
        sa.Column('price', TokenAmount(), nullable=False),
        sa.Column('currency_token_id', sa.Integer(), sa.ForeignKey('tokens.id'), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='active'),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        _timestamp('created_at'),
        sa.Column('sold_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('buyer_address', sa.String(length=42), nullable=True),
    )
    op.create_index('ix_marketplace_listings_token_id', 'marketplace_listings', ['token_id'])
    op.create_index('ix_marketplace_listings_seller_address', 'marketplace_listings', ['seller_address'])
    op.create_index('ix_marketplace_listings_status', 'marketplace_listings', ['status'])

    op.bulk_insert(networks, DEFAULT_NETWORKS)


def downgrade() -> None:
    op.drop_table('marketplace_listings')
    op.drop_table('blockchain_events')
    op.drop_table('nft_metadata')
    op.drop_table('transactions')
    op.drop_table('token_balances')
    op.drop_table('tokens')
    op.drop_table('wallets')
    op.drop_table('smart_contracts')
    op.drop_table('networks')
