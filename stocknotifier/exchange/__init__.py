"""
Binance spot REST client.

The public entrypoint is `stocknotifier.exchange.client.BinanceClient`. The smaller modules
(signing, query encoding, quantization, clock sync, exchange metadata) are kept separate so
they can be tested without a network.
"""
