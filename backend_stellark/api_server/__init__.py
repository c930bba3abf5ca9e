"""
API server package: HTTP interface for contract deployment and market data.

The deploy endpoint shells out to the contract toolchain; read endpoints
delegate to the market service (metadata store + contract reads).
"""
