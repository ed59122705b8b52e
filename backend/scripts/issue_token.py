"""Print a signed access token for manual testing against a local server.

Usage: python scripts/issue_token.py USER_ID [--permission NAME ...]

Example: python scripts/issue_token.py 7 --permission timeTable --permission timeTableAdmin
"""
import sys
import argparse
import pathlib
# Ensure `backend/` is on sys.path so `schoolapi` package imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from schoolapi.auth import create_access_token

if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('user_id', type=int)
    parser.add_argument('--permission', action='append', default=[], help='Permission flag to grant (repeatable)')
    parser.add_argument('--hours', type=int, default=None, help='Token lifetime in hours')
    args = parser.parse_args()
    print(create_access_token(args.user_id, {p: True for p in args.permission}, expire_hours=args.hours))
