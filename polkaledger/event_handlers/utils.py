import functools
import logging

logger = logging.getLogger(__name__)


def decorator_factory(decorator):
    """
    Meta decorator
    Is used to decorate other decorators such that they can have passed an argument
    e.g.
    @decorator(argument)
    would not work if decorator isn't decorated with this decorator
    It is used mostly for the event_error_handling such that we can decorate a function with an exception and
    log it if something bad happened
    """

    def layer(*errors, **kwargs):

        def repl(f):
            return decorator(f, errors, **kwargs)

        return repl

    return layer


@decorator_factory
def event_error_handling(function, errors):
    """
    This decorator is used for error handling and logging of the ledger rules.
    The failing entry is dropped, the error is logged with the extrinsic (or entry)
    id and counted.

    Usage:
    @event_error_handling(InvalidAmountError)
    def handle_foo(self, context):
        ...

    """
    @functools.wraps(function)
    def wrapper(cls, context, *args, **kwargs):
        try:
            return function(cls, context, *args, **kwargs)
        except errors as e:
            entry_id = getattr(e, "entry_id", None) or context.extrinsic_id
            context.errors.extrinsic_error(
                entry_id, f"{type(e).__name__}: {e}\t {function.__name__} failed in event "
                          f"{context.ev_idx}, {context.event.method}")
            return []

    return wrapper
