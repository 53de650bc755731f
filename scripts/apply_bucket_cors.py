"""
Apply the browser CORS rule to the storage bucket.
Without it, direct browser uploads to signed URLs fail with "Failed to fetch".

Usage:
    python scripts/apply_bucket_cors.py [origin ...]
"""
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from utils.storage import apply_bucket_cors, StorageConfigError


def main(argv):
    origins = argv[1:]
    try:
        result = apply_bucket_cors(origins)
    except StorageConfigError as e:
        print(f"✗ {e}")
        sys.exit(1)
    except Exception as e:
        print(f"✗ Error applying CORS: {e}")
        sys.exit(1)

    print(f"✓ CORS configured on bucket '{result['bucket']}'")
    for rule in result["rules"]:
        print(f"  origins: {', '.join(rule['AllowedOrigins'])}")
        print(f"  methods: {', '.join(rule['AllowedMethods'])}")


if __name__ == "__main__":
    main(sys.argv)
