"""
Diagnostic script to check .env loading and the imaging stack.
Run this to troubleshoot configuration before starting the server.
"""

import os
import sys
from pathlib import Path

print("\n" + "=" * 70)
print("🔍 ENVIRONMENT DIAGNOSTICS")
print("=" * 70 + "\n")

# 1. Check Python version
print(f"1. Python Version: {sys.version}")
print()

# 2. Check .env file
env_path = Path(__file__).parent / ".env"
print(f"2. .env File Location: {env_path}")
print(f"   Exists: {env_path.exists()}")
print()

# 3. Load .env
print("3. Loading .env File:")
try:
    from dotenv import load_dotenv

    result = load_dotenv(dotenv_path=env_path, override=False)
    print(f"   Result: {result}")
except ImportError:
    print("   ✗ python-dotenv NOT installed")
    print("   Run: pip install python-dotenv")
print()

# 4. Effective configuration
print("4. Configuration:")
log_level = os.environ.get("LOG_LEVEL", "INFO")
debug_images = os.environ.get("DEBUG_COMPOSITION_IMAGES", "").lower() == "true"
debug_dir = Path(os.environ.get("COMPOSITION_DEBUG_DIR", "/tmp/composition-debug"))
print(f"   LOG_LEVEL: {log_level}")
print(f"   DEBUG_COMPOSITION_IMAGES: {debug_images}")
print(f"   COMPOSITION_DEBUG_DIR: {debug_dir}")
print()

# 5. Imaging packages
print("5. Imaging Packages:")
issues = []
for module_name, package in (("PIL", "Pillow"), ("numpy", "numpy"), ("cv2", "opencv-python-headless")):
    try:
        module = __import__(module_name)
        print(f"   ✓ {package} (version: {getattr(module, '__version__', 'unknown')})")
    except ImportError:
        print(f"   ✗ {package} NOT installed")
        issues.append(f"❌ {package} not installed (pip install {package})")
print()

# 6. Debug directory
if debug_images:
    print("6. Debug Image Directory:")
    try:
        debug_dir.mkdir(parents=True, exist_ok=True)
        writable = os.access(debug_dir, os.W_OK)
    except OSError as exc:
        print(f"   ✗ Cannot create {debug_dir}: {exc}")
        writable = False
    print(f"   Writable: {writable}")
    if not writable:
        issues.append(f"❌ COMPOSITION_DEBUG_DIR {debug_dir} is not writable")
    print()

# 7. Summary
print("=" * 70)
print("📋 SUMMARY")
print("=" * 70)

if not issues:
    print("✅ All checks passed! Configuration looks good.")
    print("\nYou can now start the server:")
    print("  uvicorn composition_engine.main:app --reload")
else:
    print("Issues found:\n")
    for issue in issues:
        print(f"  {issue}")

print("=" * 70 + "\n")
