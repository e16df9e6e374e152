#!/usr/bin/env python3
"""Transaction Graph Explorer - build and persist account/transaction graphs."""
import asyncio
import argparse
from datetime import datetime

from config.logging_config import configure_logging
from container import Container
from graph.builder import GraphBuilder
from domain.models import EnhancedGraphState


def print_summary(builder: GraphBuilder) -> None:
    summary = builder.graph.get_summary()
    print("\n" + "-" * 60)
    print(f"Accounts: {summary['accounts']}  Transactions: {summary['transactions']}  "
          f"Edges: {summary['edges']}")
    print(f"Expanded accounts: {len(builder.loaded_accounts)}")
    if builder.failed_accounts:
        print(f"Failed accounts: {len(builder.failed_accounts)}")
        for address, error in list(builder.failed_accounts.items())[:5]:
            print(f"  -> {address[:12]}...: {error[:100]}")


def print_saved_graphs(container: Container) -> None:
    saved = container.state_store.get_saved_graphs()
    if not saved:
        print("No saved graphs.")
        return
    for entry in saved:
        when = datetime.fromtimestamp(entry.timestamp / 1000).strftime("%Y-%m-%d %H:%M:%S")
        print(f"{when}  {entry.signature}  {entry.title}")


async def run_exploration(container: Container, account: str | None, signature: str | None) -> None:
    print("\n" + "=" * 60)
    print("TRANSACTION GRAPH EXPLORER")
    print("=" * 60)
    if account:
        print(f"Account: {account}")
    if signature:
        print(f"Transaction: {signature}")
    print(f"Started: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print("=" * 60 + "\n")

    store = container.state_store
    builder = container.new_builder()

    saved = store.load_state(signature) if signature else None
    if isinstance(saved, EnhancedGraphState):
        # Elements are re-fetched; the viewport and title carry over and
        # the expansion bookkeeping is merged back in on save.
        print(f"Previous session: {len(saved.nodes)} nodes, "
              f"{len(saved.expanded_nodes)} expanded accounts (re-fetching)")

    added = await builder.explore(account=account, signature=signature)
    print(f"Initial expansion added {len(added)} elements")

    focus = signature
    if not focus:
        transactions = builder.graph.nodes_of_kind("transaction")
        focus = transactions[0].id if transactions else None

    if focus:
        controller = container.new_focus_controller(
            builder, on_focus_changed=lambda sig: print(f"Focused {sig}")
        )
        await controller.focus_on_transaction(focus)

        if isinstance(saved, EnhancedGraphState) and focus == saved.focused_transaction:
            state = builder.enhanced_snapshot(focus, viewport=saved.viewport, title=saved.title)
        else:
            state = builder.enhanced_snapshot(focus)
        if store.auto_save(state):
            print(f"Saved graph state for {focus}")

    print_summary(builder)


async def main():
    parser = argparse.ArgumentParser(description="Transaction Graph Explorer")
    parser.add_argument("--account", help="Account address to start from")
    parser.add_argument("--signature", help="Transaction signature to focus")
    parser.add_argument("--depth", type=int, default=None, help="Maximum expansion depth")
    parser.add_argument("--list", action="store_true", help="List saved graphs and exit")
    parser.add_argument("--delete", metavar="SIGNATURE", help="Delete one saved graph and exit")
    parser.add_argument("--clear", action="store_true", help="Delete all saved graphs and exit")
    parser.add_argument("--cleanup", action="store_true", help="Remove expired saved graphs and exit")
    parser.add_argument("--quiet", action="store_true", help="Only log warnings and errors")
    parser.add_argument("--log-file", default=None, help="Also write logs to this file")
    args = parser.parse_args()

    container = Container()
    verbose = not args.quiet and container.settings.log_level.upper() in {"DEBUG", "INFO"}
    configure_logging(verbose=verbose, log_file=args.log_file)
    if args.depth is not None:
        container.settings.max_depth = args.depth

    if args.list:
        print_saved_graphs(container)
        return
    if args.delete:
        deleted = container.state_store.delete_graph(args.delete)
        print("Deleted." if deleted else "Delete failed.")
        return
    if args.clear:
        removed = container.state_store.clear_all_states()
        print(f"Removed {removed} saved graphs.")
        return
    if args.cleanup:
        removed = container.state_store.cleanup_old_states()
        print(f"Removed {removed} expired graphs.")
        return

    if not args.account and not args.signature:
        args.account = input("Enter account address: ").strip()
        if not args.account:
            print("No account. Exiting.")
            return

    await run_exploration(container, args.account, args.signature)


def cli():
    asyncio.run(main())


if __name__ == "__main__":
    cli()
