REDIS_SESSION_COUNTER_KEY = "live_session:counter" # atomic id allocator
REDIS_SESSION_KEY = "live_session:{session_id}" # hash - one session record
REDIS_SESSION_INDEX_KEY = "live_session:index" # sorted set - session ids scored by id

# **Example `live_session:{id}` hash fields**
# - `id` = integer, allocated by INCR on `live_session:counter`
# - `userurl` = string
# - `createdAt` = ISO timestamp
# - `updatedAt` = ISO timestamp
