from chainledger.models.network import Network
from chainledger.models.contract import SmartContract, ContractType
from chainledger.models.wallet import Wallet
from chainledger.models.token import Token, TokenBalance, TokenType
from chainledger.models.nft import NFTMetadata, MarketplaceListing, ListingStatus
from chainledger.models.transaction import Transaction, TransactionStatus, TransactionType
from chainledger.models.event import BlockchainEvent
