#!/usr/bin/env python3
"""
VPA Companion CLI

A command-line interface for inspecting the VerticalPodAutoscalers kept
next to Deployments and Jobs, and for reconciling a single workload by hand.
"""

import argparse
import sys

from kubernetes import config

from companion_operator import crd
from companion_operator.errors import CompanionError
from companion_operator.k8s import ClusterStore
from companion_operator.reconcile import REGISTRATIONS, CompanionReconciler
from companion_operator.templates import companion_name


def load_kubeconfig():
    """Load Kubernetes configuration."""
    try:
        config.load_incluster_config()
        return True
    except config.ConfigException:
        try:
            config.load_kube_config()
            return True
        except Exception as e:
            print(f"Error loading Kubernetes config: {e}", file=sys.stderr)
            return False


def connect(args):
    """Connect a store, exiting if no cluster config is available."""
    if not load_kubeconfig():
        sys.exit(1)
    return ClusterStore.connect(request_timeout=args.timeout)


def selected_kinds(kind):
    if kind == "all":
        return [crd.DEPLOYMENT, crd.JOB]
    return [crd.PARENT_KINDS[kind]]


def registration_for(parent_kind):
    for registration in REGISTRATIONS:
        if registration.parent_kind == parent_kind:
            return registration
    raise ValueError(f"No registration for {parent_kind.kind}")


def cmd_list(args, store=None):
    """List parent workloads and whether their VPA exists."""
    store = store or connect(args)

    try:
        companions = {
            (item["metadata"]["namespace"], item["metadata"]["name"])
            for item in store.list_companions(args.namespace)
        }

        rows = []
        for parent_kind in selected_kinds(args.kind):
            for parent in store.list_parents(parent_kind, args.namespace):
                namespace = parent.metadata.namespace
                name = parent.metadata.name
                vpa_name = companion_name(name)
                present = (namespace, vpa_name) in companions
                rows.append((name, namespace, parent_kind.kind, vpa_name, "yes" if present else "no"))
    except CompanionError as e:
        print(f"✗ Error: {e}", file=sys.stderr)
        sys.exit(1)

    if not rows:
        print("No workloads found.")
        return

    print(f"{'NAME':<30} {'NAMESPACE':<20} {'KIND':<12} {'VPA':<34} {'PRESENT':<7}")
    print("-" * 107)
    for name, namespace, kind, vpa_name, present in rows:
        print(f"{name:<30} {namespace:<20} {kind:<12} {vpa_name:<34} {present:<7}")


def cmd_reconcile(args, store=None):
    """Reconcile the VPA of a single workload."""
    store = store or connect(args)

    registration = registration_for(crd.PARENT_KINDS[args.kind])
    reconciler = CompanionReconciler(store, registration.parent_kind, registration.binding)

    try:
        result = reconciler.reconcile(args.namespace, args.name)
    except CompanionError as e:
        print(f"✗ Reconcile failed: {e}", file=sys.stderr)
        sys.exit(1)

    if result.changed:
        print(f"✓ {result.action.value}: VPA '{result.companion_name}' in namespace '{result.namespace}'")
    else:
        print(f"VPA '{result.companion_name}' unchanged ({result.action.value})")


def cmd_orphans(args, store=None):
    """List managed VPAs whose target workload no longer exists."""
    store = store or connect(args)

    orphans = []
    try:
        for item in store.list_companions(args.namespace):
            metadata = item.get("metadata", {})
            target = item.get("spec", {}).get("targetRef", {})
            parent_kind = crd.PARENT_KINDS.get(str(target.get("kind", "")).lower())
            if parent_kind is None:
                continue
            if store.get_parent(parent_kind, metadata.get("namespace"), target.get("name")) is None:
                orphans.append((metadata.get("name"), metadata.get("namespace"), parent_kind.kind, target.get("name")))
    except CompanionError as e:
        print(f"✗ Error: {e}", file=sys.stderr)
        sys.exit(1)

    if not orphans:
        print("No orphaned VPAs found.")
        return

    print(f"{'VPA':<34} {'NAMESPACE':<20} {'KIND':<12} {'TARGET':<30}")
    print("-" * 99)
    for vpa_name, namespace, kind, target_name in orphans:
        print(f"{vpa_name:<34} {namespace:<20} {kind:<12} {target_name:<30}")


def build_parser():
    parser = argparse.ArgumentParser(
        description="VPA Companion CLI - Inspect VerticalPodAutoscalers kept next to Deployments and Jobs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # List Deployments and Jobs with their VPA status
  %(prog)s list

  # Only Jobs in one namespace
  %(prog)s list --kind job --namespace batch

  # Reconcile one Deployment now
  %(prog)s reconcile deployment orders -n default

  # Find VPAs whose workload is gone
  %(prog)s orphans
        """,
    )
    parser.add_argument(
        "--timeout", type=float, default=30, help="API request timeout in seconds (default: 30)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # List command
    list_parser = subparsers.add_parser("list", help="List workloads and their VPA")
    list_parser.add_argument(
        "--namespace", "-n", help="Filter by namespace (all namespaces if not specified)"
    )
    list_parser.add_argument(
        "--kind", choices=["deployment", "job", "all"], default="all", help="Workload kind (default: all)"
    )
    list_parser.set_defaults(func=cmd_list)

    # Reconcile command
    reconcile_parser = subparsers.add_parser("reconcile", help="Reconcile the VPA of one workload")
    reconcile_parser.add_argument("kind", choices=["deployment", "job"], help="Workload kind")
    reconcile_parser.add_argument("name", help="Workload name")
    reconcile_parser.add_argument(
        "--namespace", "-n", default="default", help="Kubernetes namespace"
    )
    reconcile_parser.set_defaults(func=cmd_reconcile)

    # Orphans command
    orphans_parser = subparsers.add_parser("orphans", help="List VPAs whose workload no longer exists")
    orphans_parser.add_argument(
        "--namespace", "-n", help="Filter by namespace (all namespaces if not specified)"
    )
    orphans_parser.set_defaults(func=cmd_orphans)

    return parser


def main(argv=None):
    """Main CLI entrypoint."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == "__main__":
    main()
