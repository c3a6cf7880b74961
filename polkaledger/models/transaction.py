from typing import Any, Dict, List

from sqlalchemy import BigInteger, Column, Integer, String, func

from polkaledger.driver_singleton import Driver
from polkaledger.models.base import Base


class Transaction(Base):
    """
    One ledger entry. Column names follow the persisted schema (camelCase),
    attribute names are snake_case.
    """
    __tablename__ = "transactions"
    chain = Column(String, primary_key=True)
    id = Column(String, primary_key=True)
    height = Column(Integer, nullable=False, index=True)
    block_hash = Column("blockHash", String)
    type = Column(String)
    sub_type = Column("subType", String)
    event = Column(String)
    add_data = Column("addData", String)
    timestamp = Column(BigInteger)
    spec_version = Column("specVersion", Integer)
    transaction_version = Column("transactionVersion", Integer)
    author_id = Column("authorId", String)
    sender_id = Column("senderId", String)
    recipient_id = Column("recipientId", String)
    amount = Column(BigInteger)
    total_fee = Column("totalFee", BigInteger)
    fee_balances = Column("feeBalances", BigInteger)
    fee_treasury = Column("feeTreasury", BigInteger)
    tip = Column(BigInteger)
    success = Column(Integer)

    FIELDS = ("chain", "id", "height", "block_hash", "type", "sub_type", "event", "add_data",
              "timestamp", "spec_version", "transaction_version", "author_id", "sender_id",
              "recipient_id", "amount", "total_fee", "fee_balances", "fee_treasury", "tip", "success")

    def as_dict(self) -> Dict[str, Any]:
        return {field: getattr(self, field) for field in self.FIELDS}

    @staticmethod
    def save_all(transactions: List["Transaction"]):
        session = Driver().get_driver()
        session.add_all(transactions)
        session.flush()

    @staticmethod
    def max_height(chain: str) -> int:
        """
        Returns the highest stored block of the chain, -1 if nothing is stored yet.
        """
        session = Driver().get_driver()
        height = session.query(func.max(Transaction.height)).filter(Transaction.chain == chain).scalar()
        return -1 if height is None else height

    @staticmethod
    def delete_from(chain: str, height: int) -> int:
        session = Driver().get_driver()
        return session.query(Transaction).filter(
            Transaction.chain == chain, Transaction.height >= height
        ).delete(synchronize_session="fetch")

    @staticmethod
    def count(chain: str) -> int:
        session = Driver().get_driver()
        return session.query(Transaction.id).filter(Transaction.chain == chain).count()

    @staticmethod
    def get_by_height(chain: str, height: int) -> List["Transaction"]:
        session = Driver().get_driver()
        return session.query(Transaction).filter(
            Transaction.chain == chain, Transaction.height == height
        ).order_by(Transaction.id).all()
