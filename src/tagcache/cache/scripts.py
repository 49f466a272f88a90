"""Server-side Lua scripts.

Scripts execute atomically inside Redis, so no other client can observe
or interleave with a half-finished bulk invalidation.
"""

from __future__ import annotations

# KEYS[1]: frozen marker key
# ARGV[1]: SCAN pattern matching the whole namespace
#
# Deletes in SCAN batches instead of a single KEYS call to bound memory
# per iteration on large namespaces.
FLUSH_SCRIPT = """
local cursor = 0
repeat
    local result = redis.call('SCAN', cursor, 'MATCH', ARGV[1])
    for _, key in ipairs(result[2]) do
        redis.call('DEL', key)
    end
    cursor = tonumber(result[1])
until cursor == 0

redis.call('DEL', KEYS[1])
"""

# KEYS[1]: member set of the tag being flushed
# ARGV[1]: namespace prefix, including the trailing delimiter
#
# Returns the number of entry identifiers that carried the tag.
FLUSH_BY_TAG_SCRIPT = """
local entries = redis.call('SMEMBERS', KEYS[1])
for _, entryIdentifier in ipairs(entries) do
    redis.call('DEL', ARGV[1] .. 'entry:' .. entryIdentifier)
    local tags = redis.call('SMEMBERS', ARGV[1] .. 'tags:' .. entryIdentifier)
    for _, tagName in ipairs(tags) do
        redis.call('SREM', ARGV[1] .. 'tag:' .. tagName, entryIdentifier)
    end
    redis.call('DEL', ARGV[1] .. 'tags:' .. entryIdentifier)
end
return #entries
"""
