from typing import List

from polkaledger.context import EventContext
from polkaledger.errors import InvalidAmountError
from polkaledger.event_handlers.abstract_event_handler import AbstractEventHandler
from polkaledger.event_handlers.utils import event_error_handling
from polkaledger.models.transaction import Transaction
from polkaledger.utils import to_int, to_str


class BalancesEventHandler(AbstractEventHandler):

    @event_error_handling(InvalidAmountError)
    def handle_transfer(self, context: EventContext) -> List[Transaction]:
        """
        balances.Transfer(from, to, amount[, fee])
        the optional 4th field is the fee, only emitted by kusama runtimes < 1050
        """
        data = context.event.data
        entry = self.create_entry(
            context, context.event_id(), context.event.method,
            sender_id=to_str(data[0]),
            recipient_id=to_str(data[1]),
            amount=to_int(data[2]),
            total_fee=to_int(data[3]) if len(data) == 4 else None
        )
        return [self.check_amount(entry)]

    @event_error_handling(InvalidAmountError)
    def handle_dust_lost(self, context: EventContext) -> List[Transaction]:
        data = context.event.data
        entry = self.create_entry(
            context, context.event_id(), context.event.method,
            sender_id=to_str(data[0]),
            amount=to_int(data[1])
        )
        return [self.check_amount(entry)]

    @event_error_handling(InvalidAmountError)
    def handle_reserve_repatriated(self, context: EventContext) -> List[Transaction]:
        """
        balances.ReserveRepatriated(from, to, amount, destination_status)
        reserved funds of the sender moved to the recipient
        """
        data = context.event.data
        entry = self.create_entry(
            context, context.event_id(), context.event.method,
            sender_id=to_str(data[0]),
            recipient_id=to_str(data[1]),
            amount=to_int(data[2])
        )
        return [self.check_amount(entry)]
