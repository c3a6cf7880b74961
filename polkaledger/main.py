import argparse
import logging
import signal
import sys
import time
from logging.handlers import RotatingFileHandler

from dotenv import load_dotenv, find_dotenv
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from polkaledger import __version__
from polkaledger.check import check_accounts
from polkaledger.config import database_url, get_chain_config, load_config
from polkaledger.driver_singleton import Driver
from polkaledger.errors import StartupError
from polkaledger.node_connection import ChainClient, SubstrateChainState
from polkaledger.normalizer import BlockNormalizer
from polkaledger.scanner import Scanner
from polkaledger.setup_pg import setup_database
from polkaledger.store import LedgerStore
from polkaledger.synthesizer import TransactionSynthesizer

logger = logging.getLogger("polkaledger")
query_logger = logging.getLogger("polkaledger.queries")


@event.listens_for(Engine, "before_cursor_execute")
def before_cursor_execute(conn, cursor, statement,
                          parameters, context, executemany):
    context._query_start_time = time.time()
    query_logger.debug("Start Query:\n%s" % statement)
    query_logger.debug("Parameters:\n%r" % (parameters,))


@event.listens_for(Engine, "after_cursor_execute")
def after_cursor_execute(conn, cursor, statement,
                         parameters, context, executemany):
    total = time.time() - context._query_start_time
    query_logger.debug("Query Complete! Total Time: %.02fms" % (total * 1000))


def setup_logging(level):
    handler = RotatingFileHandler("polkaledger.log", maxBytes=1024 ** 3, backupCount=2)
    logging.basicConfig(level=level, handlers=[handler],
                        format='%(asctime)s %(levelname)s %(funcName)s(%(lineno)d) %(message)s')


def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog="polkaledger",
                                     description="Stores the balance relevant transactions of a substrate chain.")
    parser.add_argument("chain", nargs="?", help="chain to scan, defaults to defchain of the config")
    parser.add_argument("--config", default="config.json", help="path of the config file")
    parser.add_argument("--check", action="store_true",
                        help="print the ledger balances of the configured check accounts and exit")
    return parser.parse_args(argv)


def connect(chain_config) -> ChainClient:
    client = ChainClient(
        providers=chain_config["providers"],
        ss58_format=chain_config.get("ss58_format"),
        type_registry_preset=chain_config.get("type_registry_preset"),
        verify_ssl=chain_config.get("verify_ssl", True),
    )
    client.connect()
    chain = client.chain_name()
    node = client.node_info()
    print()
    print(f"polkaledger: v{__version__}")
    print(f"Chain:       {chain}")
    print(f"Node:        {node['name']} v{node['version']}")
    print(f"Provider:    {client.provider}\n")
    if chain != chain_config["name"]:
        raise StartupError(f'Wrong chain!\nGot "{chain}" chain, but expected "{chain_config["name"]}" chain.')
    return client


def open_database(config) -> Engine:
    try:
        engine = create_engine(database_url(config))
        setup_database(engine)
    except (RuntimeError, SQLAlchemyError) as e:
        raise StartupError(f"Cannot open the database: {e}") from e
    return engine


def main(argv=None) -> int:
    args = parse_args(argv)
    load_dotenv(find_dotenv())
    try:
        config = load_config(args.config)
        chain_config = get_chain_config(config, args.chain)
    except StartupError as e:
        print(e)
        print("Syntax: polkaledger [chain] [--config config.json] [--check]")
        return 1

    setup_logging(config.get("logLevel", logging.INFO))
    try:
        engine = open_database(config)
    except StartupError as e:
        logger.error(str(e))
        print(e)
        print("Process aborted.\n")
        return 1

    with Session(engine) as session:
        Driver().add_driver(session)
        try:
            client = connect(chain_config)
        except StartupError as e:
            logger.error(str(e))
            print(e)
            print("Process aborted.\n")
            return 1

        if args.check:
            check_accounts(chain_config, client)
            return 0

        chain = chain_config["name"]
        chain_state = SubstrateChainState(client)
        scanner = Scanner(
            client,
            BlockNormalizer(client, chain_config.get("ss58_format") or 0),
            TransactionSynthesizer(chain, chain_state),
            LedgerStore(chain),
            start_block=chain_config.get("startBlock", 0),
        )
        signal.signal(signal.SIGINT, scanner.request_stop)
        signal.signal(signal.SIGTERM, scanner.request_stop)

        result = scanner.scan()
        print()
        print(f"{'Interrupted' if result.interrupted else 'Finished'}: {result.processed} blocks "
              f"({result.first_block} - {result.last_block}), {result.errors} errors, {result.warnings} warnings")
        logger.info(f"scan finished: {result}")
    return 0


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
