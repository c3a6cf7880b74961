from dotenv import load_dotenv, find_dotenv
from sqlalchemy import create_engine
# The models need to be imported, else their tables won't be created
from polkaledger.models import Base, Transaction
from polkaledger.config import database_url, load_config


def setup_database(engine):
    Base.metadata.create_all(engine)


if __name__ == "__main__":
    load_dotenv(find_dotenv())
    engine = create_engine(database_url(load_config()))
    setup_database(engine)
    print(f"created tables: {', '.join(Base.metadata.tables)}")
