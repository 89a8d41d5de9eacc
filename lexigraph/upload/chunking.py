MIB = 1024 * 1024
MAX_PARTS = 10_000


def count_chunks(file_size: int, chunk_size: int) -> int:
    """ceil(file_size / chunk_size) in integer arithmetic."""
    return -(-file_size // chunk_size)


def calculate_chunk_size(file_size: int, max_chunk_size_mb: int) -> int:
    """Pick a part size for a file of `file_size` bytes.

    Files up to the maximum chunk size go up as a single part. Larger files
    use the maximum chunk size, unless that would need more parts than the
    object store accepts, in which case the file is split into exactly
    MAX_PARTS parts (the last one possibly shorter).
    """
    max_chunk_size = max_chunk_size_mb * MIB
    if file_size <= max_chunk_size:
        return file_size
    if count_chunks(file_size, max_chunk_size) > MAX_PARTS:
        return count_chunks(file_size, MAX_PARTS)
    return max_chunk_size
