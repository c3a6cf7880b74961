from polkaledger.models.base import Base
from polkaledger.models.transaction import Transaction
