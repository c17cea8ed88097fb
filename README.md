# svcplug

Building blocks for the server side of an RPC service: plugins that hook into
connection accept and request handling, plugins that publish services into a
key-value store, and small shared utilities. Plugins are plain objects with
methods such as `handle_conn_accept(conn)`, `post_read_request(ctx, r, e)` and
`post_write_response(ctx, req, res, e)`; requests and responses are any
objects with `service_path`, `service_method` and `metadata` attributes.

## Install

    pip install svcplug

The only runtime dependency is `psutil`, used to look up interface addresses.
Add the `test` extra to pull in pytest:

    pip install "svcplug[test]"

## What is inside

### `svcplug.util`

- `buffer_pool.LimitedPool(min_size, max_size)`: byte buffers pooled in
  size levels that double from `min_size` up to `max_size`. `get(size)`
  returns a writable `memoryview` of exactly `size` bytes; `put(buf)` hands
  the buffer back. Sizes above `max_size` are served with fresh buffers and
  never pooled. `find_pool` and `find_put_pool` tell which `LevelPool` a size
  maps to.
- `compress.zip_bytes` / `compress.unzip_bytes`: gzip compression;
  `unzip_bytes` raises `ValueError` on data that is not valid gzip.
- `converter.bytes_to_str` / `converter.str_to_bytes`: lossless UTF-8
  conversion (invalid bytes survive a round trip); `converter.copy_meta(src, dst)`
  copies pairs into `dst` unless `dst` is `None`.
- `net.get_free_port()`: a TCP port on 127.0.0.1 that is free right now.
- `net.parse_rpcx_address("tcp@127.0.0.1:8972")` → `("tcp", "127.0.0.1", 8972)`;
  raises `ValueError` on a malformed address. Bracketed IPv6 hosts are accepted.
- `net.convert_meta_to_map` parses a query-encoded metadata string (first
  value of each key wins, malformed input gives `{}`);
  `net.convert_map_to_string` encodes a dict with keys in sorted order.
- `net.external_ipv4()` / `net.external_ipv6()`: the first non-loopback address
  of an interface that is up; raise `OSError` when there is none.

### `svcplug.share`

- `context.Context`: a thread-safe context holding local values that shadow
  those of its parent (a `context.Background` by default). Use `value`,
  `set_value` and `delete_key`, or build one with `new_context(parent)`,
  `with_value(parent, key, val)` or `with_local_value(ctx, key, val)`. A `None`
  key raises `ValueError`, an unhashable one `TypeError`.
- `share`: metadata key constants (`AUTH_KEY`, `SERVER_ADDRESS`, ...),
  `ContextKey`, `REQ_META_DATA_KEY` / `RES_META_DATA_KEY`, the `CODECS` table
  with `register_codec`, and the dataclasses `FileTransferArgs`,
  `FileTransferReply`, `DownloadFileArgs`, `StreamServiceArgs`,
  `StreamServiceReply`.
- `trace`: `MetadataSupplier`, a text-map carrier over a dict, and
  `inject(ctx, propagator)` / `extract(ctx, propagator)`, which pass the
  request metadata of a context to any object with `inject(ctx, carrier)` and
  `extract(ctx, carrier)` methods.

### `svcplug.serverplugin`

- `alias.AliasPlugin`: `alias(alias_path, alias_method, path, method)` makes a
  request for the alias call the real method, and the alias is restored on the
  response.
- `ipfilter.BlacklistPlugin` / `ipfilter.WhitelistPlugin`: accept or refuse a
  connection by the address from its `getpeername()`, matched against a set of
  addresses and a list of networks (such as `"172.17.0.0/16"`).
- `rate_limiting.TokenBucket`, `RateLimitingPlugin(fill_interval, capacity)`
  for connections, and `ReqRateLimitingPlugin(fill_interval, capacity, block)`
  for requests, which either waits for a token or raises
  `ReqReachLimitError`. Intervals are in seconds.
- `tee.TeeConnPlugin`: wraps accepted connections in `TeeConn`, which copies
  every byte received with `recv` or `read` to a writer; `update(writer)`
  changes it for later connections, `None` stops copying.
- `metrics`: `Counter`, `Meter` (1/5/15-minute and mean rates), `Histogram`
  (uniform-sample reservoir with mean, stddev, variance and percentiles), a
  `Registry`, and `get_or_register_counter` / `_meter` / `_histogram`.
- `metrics_plugin.MetricsPlugin`: counts registered services, accepted
  connections and per-method reads and writes, and records call times when
  the context holds `START_REQUEST_CONTEXT_KEY`. `log(freq, logger)` writes all
  metrics to `logger.info` every `freq` seconds and returns an event that
  stops it.
- `kvstore.MemoryStore`: an in-memory, thread-safe key-value store with TTLs,
  `atomic_put`, and `StoreError` / `KeyNotFoundError`.
- `registry.KVRegisterPlugin` and its variants `consul.ConsulRegisterPlugin`,
  `redis_registry.RedisRegisterPlugin` and `zookeeper.ZooKeeperRegisterPlugin`:
  publish each service at `base/service/address` with its metadata. With a
  positive `update_interval` a background thread refreshes the nodes, adding
  `calls` and `connections` rates from a metrics `Registry`; `stop()` removes
  the nodes.

## Example

```python
from svcplug.serverplugin.consul import ConsulRegisterPlugin
from svcplug.serverplugin.kvstore import MemoryStore
from svcplug.util.net import parse_rpcx_address

network, host, port = parse_rpcx_address("tcp@127.0.0.1:8972")

store = MemoryStore()
plugin = ConsulRegisterPlugin("tcp@127.0.0.1:8972", base_path="/rpcx", store=store)
plugin.start()
plugin.register("Arith", None, "group=test")
store.get("rpcx/Arith/tcp@127.0.0.1:8972").value  # b"group=test"
plugin.stop()
```

## What this package does not do

- It contains no RPC server, client, wire protocol or codecs: the plugins are
  called by whatever server you use, and `CODECS` starts empty.
- It does not talk to Consul, Redis or ZooKeeper itself. The registry plugins
  need a store object with the `MemoryStore` interface, passed as `store` or
  built by `store_factory(servers, options)`; without one they raise
  `StoreError`.
- Metrics stay in process; they are only reported through `MetricsPlugin.log`.
- There is no command-line tool.

## Tests

    pytest