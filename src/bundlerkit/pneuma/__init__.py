"""
Pneuma - JSON-RPC layer for bundlerkit.

Provides the async JSON-RPC provider, the bundler client that submits and
estimates user operations, and the hex wire encoding they share.

Uses httpx instead of the heavyweight web3.py.
"""
