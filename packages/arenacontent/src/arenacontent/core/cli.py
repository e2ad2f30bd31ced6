import argparse
import base64
import json
import sys
from pathlib import Path

from arenacontent.core.exception import ArenaContentError, ContentNotFoundError, InvalidInputError
from arenacontent.core.observability import configure_logging
from arenacontent.core.resolver import ContentResolver
from arenacontent.core.runtime.settings import load_settings
from arenacontent.core.sources import build_collaborators, load_source_file
from arenacontent.core.spec import ArenaSource, ObjectMetaSpec
from arenacontent.core.tree import build_tree
from arenacontent.core.versions import VersionStore


class _NoConfigMaps:
    def get_configmap_content(self, namespace, name):
        return None


def _source_for(args, base: Path, settings) -> tuple:
    """(source, configmap reader) for content commands.

    Without --source-file only the on-disk content under --base is consulted.
    """
    if args.source_file:
        _lookup, configmaps = build_collaborators(settings)
        return load_source_file(args.source_file), configmaps
    return ArenaSource(metadata=ObjectMetaSpec(name=base.name)), _NoConfigMaps()


def _print_tree(nodes, indent: int = 0) -> None:
    for n in nodes:
        if n.is_directory:
            print(f"{'  ' * indent}{n.name}/")
            _print_tree(n.children or [], indent + 1)
        else:
            print(f"{'  ' * indent}{n.name} ({n.size} bytes)")


def main(argv=None) -> int:
    argv = argv or sys.argv[1:]
    parser = argparse.ArgumentParser(prog="arenacontent", description="arenacontent CLI")
    sp = parser.add_subparsers(dest="cmd", required=True)

    verp = sp.add_parser("versions", help="Inspect and switch content versions on a content volume")
    vsp = verp.add_subparsers(dest="versions_cmd", required=True)

    listp = vsp.add_parser("list", help="List versions (newest first) and the current HEAD")
    listp.add_argument("--base", required=True, help="Source base path ({root}/{workspace}/{namespace}/arena/{source})")
    listp.add_argument("--json", action="store_true", help="Output machine-readable JSON")

    switchp = vsp.add_parser("switch", help="Point HEAD at an existing version")
    switchp.add_argument("--base", required=True, help="Source base path")
    switchp.add_argument("version", help="Version hash")
    switchp.add_argument("--json", action="store_true", help="Output machine-readable JSON")

    resp = vsp.add_parser("resolve", help="Resolve 'latest', a tag or a hash to a version hash")
    resp.add_argument("--base", required=True, help="Source base path")
    resp.add_argument("ref", help="Version reference")

    contp = sp.add_parser("content", help="Read resolved content")
    csp = contp.add_subparsers(dest="content_cmd", required=True)

    treep = csp.add_parser("tree", help="Print the resolved content tree")
    treep.add_argument("--base", required=True, help="Source base path")
    treep.add_argument("--source-file", default=None, help="ArenaSource manifest YAML (enables ConfigMap/artifact backends)")
    treep.add_argument("--json", action="store_true", help="Output machine-readable JSON")

    catp = csp.add_parser("cat", help="Print one file from the resolved content")
    catp.add_argument("--base", required=True, help="Source base path")
    catp.add_argument("path", help="Path relative to the content root")
    catp.add_argument("--source-file", default=None, help="ArenaSource manifest YAML (enables ConfigMap/artifact backends)")
    catp.add_argument("--json", action="store_true", help="Output machine-readable JSON")

    servep = sp.add_parser("serve", help="Run the HTTP API")
    servep.add_argument("--host", default="0.0.0.0")
    servep.add_argument("--port", type=int, default=8080)

    args = parser.parse_args(argv)
    settings = load_settings()
    configure_logging(settings)

    try:
        if args.cmd == "versions":
            store = VersionStore(args.base)
            if args.versions_cmd == "list":
                head = store.read_head()
                versions = store.list_versions()
                if args.json:
                    print(json.dumps({"head": head, "versions": [v.as_dict() for v in versions]}, ensure_ascii=False))
                else:
                    print(f"head={head or '(none)'}")
                    for v in versions:
                        marker = "*" if v.hash == head else " "
                        latest = " latest" if v.is_latest else ""
                        print(f"{marker} {v.hash} created={v.created_at} files={v.file_count} size={v.size}{latest}")
                return 0

            if args.versions_cmd == "switch":
                res = store.switch_version(args.version)
                if args.json:
                    print(json.dumps({"success": True, "previousHead": res.previous_head, "newHead": res.new_head}, ensure_ascii=False))
                else:
                    print(f"SWITCHED: {res.previous_head or '(none)'} -> {res.new_head}")
                return 0

            if args.versions_cmd == "resolve":
                resolved = store.resolve_ref(args.ref)
                if resolved is None:
                    print(f"unknown version reference: {args.ref}", file=sys.stderr)
                    return 2
                print(resolved)
                return 0

        if args.cmd == "content":
            base = Path(args.base)
            source, configmaps = _source_for(args, base, settings)
            resolver = ContentResolver(settings, configmaps=configmaps)

            if args.content_cmd == "tree":
                tree = build_tree(resolver.resolve(source, base))
                if args.json:
                    print(json.dumps({"sourceName": source.name, **tree.as_dict()}, ensure_ascii=False))
                else:
                    _print_tree(tree.nodes)
                    print(f"files={tree.file_count} directories={tree.directory_count}")
                return 0

            if args.content_cmd == "cat":
                fc = resolver.read_file(source, base, args.path)
                if args.json:
                    print(json.dumps(fc.as_dict(), ensure_ascii=False))
                elif fc.encoding == "base64":
                    sys.stdout.buffer.write(base64.b64decode(fc.content))
                    sys.stdout.flush()
                else:
                    sys.stdout.write(fc.content)
                return 0
    except (ContentNotFoundError, InvalidInputError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2
    except ArenaContentError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    if args.cmd == "serve":
        import uvicorn

        uvicorn.run("arenacontent.server.app:create_app", factory=True, host=args.host, port=args.port)
        return 0

    return 1


if __name__ == "__main__":
    raise SystemExit(main())
