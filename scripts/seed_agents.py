#!/usr/bin/env python3
"""
Seed the chat SQLite DB with demo agents.

Creates data/chat.db (or CHAT_DB_PATH) if missing and inserts the agents in
SEED_AGENTS, owned by --owner. Use --reset to remove all stored agents and
chat histories first. The default agent (ID 1) lives in code and is never seeded.

Run from project root:

    python scripts/seed_agents.py --owner you@example.com
    python scripts/seed_agents.py --owner you@example.com --reset
"""

import argparse
import sys
from pathlib import Path

# Project root on path so "app" resolves
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from app.core.chat_db import ChatDB
from app.core.config import CHAT_DB_PATH
from app.schemas.agent import AgentCreate
from app.services.agent_service import create_agent

SEED_AGENTS = [
    {
        "AgentName": "Nutricionista",
        "agentFunction": "Orienta sobre alimentação e suplementos.",
        "systemPrompt": "Você é um nutricionista. Responda de forma prática e baseada em evidências.",
        "shouldSearchPrompt": (
            'Esta pergunta precisa de informações atualizadas?\n\nPergunta: "{question}"\n\n'
            'Responda APENAS com "SIM" ou "NÃO".'
        ),
    },
    {
        "AgentName": "Tradutor",
        "agentFunction": "Traduz textos entre português e inglês.",
        "systemPrompt": "Você é um tradutor profissional. Traduza fielmente, sem comentários.",
        "shouldSearchPrompt": 'Pergunta: "{question}"\n\nResponda APENAS com "NÃO".',
    },
]


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed demo agents into the chat DB.")
    parser.add_argument("--owner", required=True, help="Email recorded as createdBy for seeded agents.")
    parser.add_argument("--db", default=CHAT_DB_PATH, help=f"SQLite path (default: {CHAT_DB_PATH}).")
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Delete all stored agents and their chat histories before seeding.",
    )
    args = parser.parse_args()

    db = ChatDB(args.db)
    try:
        if args.reset:
            for doc in db.list_agents():
                removed = db.delete_agent_with_history(doc["AgentID"])
                print(f"  removed agent {doc['AgentID']} ({removed} histories)")

        for fields in SEED_AGENTS:
            agent = create_agent(db, AgentCreate.model_validate(fields), owner=args.owner)
            print(f"  added: {agent.agent_id} {agent.name}")
    finally:
        db.close()

    print(f"Done. Seeded {len(SEED_AGENTS)} agents.")


if __name__ == "__main__":
    main()
