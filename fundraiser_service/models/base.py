from sqlalchemy.orm import declarative_base

# Shared metadata for every ledger table
Base = declarative_base()
