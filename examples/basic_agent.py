"""
Basic example: LangChain agent that pays for APIs with Miden.

This example shows how to create an agent that can access paid APIs
using the x402 protocol on Miden. The agent automatically handles payment
negotiation when it encounters a 402 response.

Payment limits are read from the environment (or a .env file):

    MIDEN_X402_MAX_PAYMENT=1000
    MIDEN_X402_ALLOWED_NETWORKS=miden:testnet

Prerequisites:
    pip install miden-x402 langchain langchain-openai

    export MIDEN_ACCOUNT_ID="0x..."
    export OPENAI_API_KEY="your-openai-key"

Usage:
    python basic_agent.py
"""

import logging
import os
import secrets

from langchain.agents import AgentExecutor, create_react_agent
from langchain_core.prompts import PromptTemplate
from langchain_openai import ChatOpenAI

from miden_x402 import MidenAgentWallet, MidenPaymentTool, load_constraints


class DemoProvenTransaction:
    def __init__(self, payload: bytes) -> None:
        self._payload = payload

    def serialize(self) -> bytes:
        return self._payload

    def id(self) -> str:
        return "0x" + self._payload[:32].hex()


class DemoLedgerClient:
    """
    Stand-in for a real Miden client.

    Returns random bytes instead of a proven transaction, so facilitators
    will reject the payment. Replace it with a client backed by the Miden
    SDK to pay for real.
    """

    async def prove_p2id(self, sender_id, recipient_id, faucet_id, amount, note_type):
        return DemoProvenTransaction(secrets.token_bytes(64))


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    constraints = load_constraints()

    # Budget in the faucet token's smallest unit
    wallet = MidenAgentWallet(
        DemoLedgerClient(),
        account_id=os.environ["MIDEN_ACCOUNT_ID"],
        budget=5_000,
    )

    print(f"Wallet initialized: {wallet.account_id}")
    print(f"Budget: {wallet.budget} base units")

    # Create the x402 payment tool
    x402_tool = MidenPaymentTool(
        wallet=wallet,
        auto_pay=True,  # Automatically pay when within limits
        max_payment=constraints.max_payment,
        allowed_faucets=sorted(constraints.allowed_faucets),
        allowed_networks=sorted(constraints.allowed_networks),
    )

    # Initialize the LLM
    llm = ChatOpenAI(model="gpt-4o", temperature=0)

    # Create a simple ReAct agent
    template = """You are a helpful assistant that can access paid APIs.

You have access to the following tools:
{tools}

Tool names: {tool_names}

When you need data from a paid API, use the x402_request tool.
The tool will automatically handle payment if the price is within your limits.

Question: {input}

{agent_scratchpad}"""

    prompt = PromptTemplate.from_template(template)

    agent = create_react_agent(llm, [x402_tool], prompt)
    agent_executor = AgentExecutor(
        agent=agent,
        tools=[x402_tool],
        verbose=True,
        handle_parsing_errors=True,
    )

    # Example: Access a paid API endpoint
    result = agent_executor.invoke({
        "input": "Get the premium weather report from http://localhost:4021/weather"
    })

    print("\n" + "=" * 50)
    print("Result:", result["output"])
    print("=" * 50)

    # Print payment summary
    summary = wallet.get_payment_summary()
    print("\nPayment Summary:")
    print(f"  Total spent: {summary['spent']}")
    print(f"  Remaining: {summary['remaining']}")
    print(f"  Payments made: {summary['payment_count']}")


if __name__ == "__main__":
    main()
