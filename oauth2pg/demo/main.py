"""
oauth2pg Demo Application

Runs an authorization code grant against the PostgreSQL stores:
- Client registration and lookup
- Authorization code issuance and exchange
- Access and refresh token lookup and revocation
- Garbage collection of expired tokens

The database is taken from the PG_URI environment variable, e.g.
postgres://postgres@localhost:5432/oauth2_test?sslmode=disable
"""

import argparse
import os
import sys
import time
from datetime import timedelta

from psycopg2.pool import ThreadedConnectionPool

from oauth2pg.adapter.psycopg import new_conn_pool
from oauth2pg.config import ClientStoreConfig, TokenStoreConfig
from oauth2pg.errors import NotFoundError
from oauth2pg.log import configure_logging
from oauth2pg.models import Client, get_current_time, new_token
from oauth2pg.store import create_client_store, create_token_store
from oauth2pg.util.config import parse_duration


def run(uri: str, gc_interval: timedelta) -> int:
    """Run the demo flow against the database at uri."""
    print("oauth2pg Demo Application")
    print("=" * 50)
    print()

    pool = ThreadedConnectionPool(1, 4, dsn=uri)
    adapter = new_conn_pool(pool)

    token_store, err = create_token_store(
        adapter, TokenStoreConfig.from_env(), gc_interval=gc_interval
    )
    if err is not None:
        print(f"✗ Error creating token store: {err}")
        token_store.close()
        pool.closeall()
        return 1

    client_store, err = create_client_store(adapter, ClientStoreConfig.from_env())
    if err is not None:
        print(f"✗ Error creating client store: {err}")
        token_store.close()
        pool.closeall()
        return 1

    print("✓ Created stores")
    print(f"  - Token table: {token_store.table_name}")
    print(f"  - Client table: {client_store.table_name}")
    print(f"  - GC interval: {token_store.gc_interval}")
    print()

    try:
        suffix = str(int(time.time() * 1000))

        print("Step 1: Client Registration")
        print("-" * 40)
        client = Client(id=f"demo-{suffix}", secret="demo-secret",
                        domain="http://localhost", user_id="demo-user")
        client_store.create(client)
        stored = client_store.get_by_id(client.id)
        print(f"✓ Registered client {stored.id} for user {stored.user_id}")
        print()

        print("Step 2: Authorization Code")
        print("-" * 40)
        code = new_token(client_id=client.id, user_id=client.user_id,
                         redirect_uri=client.domain, scope="read",
                         code=f"code-{suffix}", code_created_at=get_current_time(),
                         code_expires_in=timedelta(minutes=10))
        token_store.create(code)
        print(f"✓ Issued code {token_store.get_by_code(code.code).code}")
        print()

        print("Step 3: Code Exchange")
        print("-" * 40)
        token_store.remove_by_code(code.code)
        now = get_current_time()
        token = new_token(client_id=client.id, user_id=client.user_id,
                          redirect_uri=client.domain, scope="read",
                          access=f"access-{suffix}", access_created_at=now,
                          access_expires_in=timedelta(seconds=1),
                          refresh=f"refresh-{suffix}", refresh_created_at=now,
                          refresh_expires_in=timedelta(seconds=2))
        token_store.create(token)
        print(f"✓ Access token {token_store.get_by_access(token.access).access}")
        print(f"✓ Refresh token {token_store.get_by_refresh(token.refresh).refresh}")
        print()

        print("Step 4: Expiration")
        print("-" * 40)
        wait = 2 + gc_interval.total_seconds() + 1
        print(f"  Waiting {wait:.0f}s for the garbage collector...")
        time.sleep(wait)
        try:
            token_store.get_by_access(token.access)
            print("✗ Expired token is still stored")
            return 1
        except NotFoundError:
            print("✓ Expired token was removed")
        print()
    finally:
        token_store.close()
        client_store.close()
        pool.closeall()

    print("Demo completed successfully!")
    return 0


def main() -> int:
    """Console script entry point."""
    parser = argparse.ArgumentParser(description="Run the oauth2pg demo flow")
    parser.add_argument("--uri", default=os.environ.get("PG_URI"),
                        help="PostgreSQL connection URI (default: $PG_URI)")
    parser.add_argument("--gc-interval", default="1s",
                        help="Garbage collection interval, e.g. 1s or 5m")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    if not args.uri:
        print("Env variable PG_URI or --uri is required to run the demo")
        return 1

    configure_logging(args.log_level)

    try:
        return run(args.uri, parse_duration(args.gc_interval))
    except KeyboardInterrupt:
        print("\nDemo interrupted by user")
        return 1


if __name__ == "__main__":
    sys.exit(main())
