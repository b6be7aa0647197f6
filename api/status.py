from record_store import COLLECTIONS, RecordStore


def check_record_store(store: RecordStore) -> dict:
    """Checks the storage medium answers and both collections can be read."""
    try:
        store.ping()
        counts = {name: len(store.load_raw(name)) for name in COLLECTIONS}
        summary = ", ".join(f"{count} {name}" for name, count in counts.items())
        return {"status": "OK", "details": f"Record store is readable ({summary})."}
    except Exception as e:
        return {"status": "ERROR", "details": f"Failed to read the record store: {str(e)}"}


def health_check(store: RecordStore) -> tuple:
    """Overall status in the same (body, status_code) shape as the other handlers."""
    results = {"record_store": check_record_store(store)}
    healthy = all(result["status"] == "OK" for result in results.values())
    return {"status": "OK" if healthy else "ERROR", "checks": results}, 200 if healthy else 503
