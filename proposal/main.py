import logging
import os
import random

from dotenv import load_dotenv

load_dotenv(override=True)

from proposal.config import load_policy, parse_query
from proposal.effects import EffectOutbox
from proposal.report import EscalationReport
from proposal.scheduler import ManualScheduler
from proposal.state_models import Viewport
from proposal.storage_gateway import InMemoryStore, ProposalStorageGateway
from proposal.web import RedirectOpener
from proposal.widget import ProposalWidget

logging.basicConfig(level=logging.INFO, format="%(levelname)s - %(message)s")


def run_lab(query: str = "name=alice&whatsapp=15551234567") -> None:
    """Demonstração sem browser: relógio virtual, store em memória e efeitos em fila."""
    print("=" * 60)
    print("Valentine Proposal - Demonstracao da escalada")
    print("=" * 60)

    policy = load_policy()
    scheduler = ManualScheduler()
    outbox = EffectOutbox()
    opener = RedirectOpener()
    store = InMemoryStore()
    widget = ProposalWidget(
        parse_query(query, policy),
        ProposalStorageGateway(store),
        audio=outbox,
        confetti=outbox,
        opener=opener,
        scheduler=scheduler,
        policy=policy,
        viewport=Viewport(width=1280, height=720),
        rng=random.Random(14),
    )
    widget.mount()
    report = EscalationReport()
    report.record("load", widget.view())

    widget.user_interaction()
    for i in range(policy.message_count - 1):
        widget.refuse()
        report.record(f"refuse #{i + 1}", widget.view())

    widget.accept()
    scheduler.advance(policy.confetti.duration_ms + policy.confetti.interval_ms)
    report.record("accept", widget.view())

    widget.share()
    report.print_report(widget.celebration.bursts_fired)
    print(f"\nStore: {store.keys()} -> {[store.get(k) for k in store.keys()]}")
    print(f"Share: {opener.last_url}")


def serve() -> None:
    import uvicorn

    from proposal.web import create_app

    host = os.environ.get("PROPOSAL_HOST", "127.0.0.1")
    port = int(os.environ.get("PROPOSAL_PORT", "8000"))
    uvicorn.run(create_app(), host=host, port=port)


if __name__ == "__main__":
    run_lab()
