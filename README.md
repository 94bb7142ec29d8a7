# gitopskit

Building blocks for GitOps tooling that works with Kubernetes resources held
as plain dictionaries, the same shape you get from `json.load` or
`yaml.safe_load` of a manifest. The package covers four things:

- judging how healthy a live resource is
- computing and applying JSON merge patches
- decoding and encoding `metadata.managedFields`
- small helpers for reading and reshaping manifests

It has no dependencies outside the standard library.

## Installing

```
pip install gitopskit
```

To run the test suite:

```
pip install "gitopskit[test]"
pytest
```

## Health assessment

`gitopskit.health.get_resource_health(obj, health_override=None)` returns a
`HealthStatus`, or `None` when the resource's kind has no built-in check. A
`HealthStatus` has two fields:

- `status`, a `HealthStatusCode`: `HEALTHY`, `SUSPENDED`, `PROGRESSING`,
  `MISSING`, `DEGRADED` or `UNKNOWN`.
- `message`.

A resource with `metadata.deletionTimestamp` set is reported as Progressing
with the message "Pending deletion". If the assessment fails, for example
because a field has the wrong type or the API version is not supported,
`HealthCheckError` is raised.

```python
from gitopskit.health import get_resource_health

status = get_resource_health(pod)
if status is not None:
    print(status.status, status.message)
```

Built-in checks, chosen by API group and kind by
`get_health_check_func(gvk)`:

| Kind | Group | Module |
| --- | --- | --- |
| Deployment, StatefulSet, DaemonSet, ReplicaSet | `apps` | `gitopskit.apps_health` |
| Job | `batch` | `gitopskit.apps_health` |
| Pod | core | `gitopskit.pod_health` |
| Service, PersistentVolumeClaim | core | `gitopskit.service_health` |
| Ingress | `extensions`, `networking.k8s.io` | `gitopskit.service_health` |
| APIService | `apiregistration.k8s.io` | `gitopskit.service_health` |
| Workflow | `argoproj.io` | `gitopskit.service_health` |
| HorizontalPodAutoscaler | `autoscaling` | `gitopskit.hpa_health` |

Each check can also be called on its own, for example `get_pod_health(obj)`
or `get_hpa_health(obj)`. HorizontalPodAutoscaler `autoscaling/v1` reads its
conditions from the `autoscaling.alpha.kubernetes.io/conditions` annotation.
The later versions read them from `status.conditions`.

To supply your own assessment, pass any object with a
`get_resource_health(obj)` method; `HealthOverride` describes this method. If
the method returns `None`, the built-in check is used. Any exception it
raises is re-raised as `HealthCheckError`.

`gitopskit.status.is_worse(current, new)` tells whether `new` is a worse
code than `current`. Codes run from best to worst: Healthy, Suspended,
Progressing, Missing, Degraded, Unknown. `HealthStatus.to_dict()` gives the
JSON form and leaves out empty fields.

## JSON merge patches

`gitopskit.mergepatch` has three functions. None of them changes its inputs.

- `apply_merge_patch(doc, patch)` applies a merge patch. A `null` in the
  patch deletes the key.
- `create_merge_patch(original, modified)` returns the patch that turns
  `original` into `modified`.
- `create_three_way_merge_patch(original, modified, current)` returns a patch
  that brings `current` to `modified`.

In the three-way patch, a field is deleted only if it is in `original` (the
last applied state) and is gone from `modified`. Other fields in `current`
are left alone. If the additions and the deletions conflict, `ValueError` is
raised.

```python
from gitopskit.mergepatch import apply_merge_patch, create_three_way_merge_patch

patch = create_three_way_merge_patch(last_applied, desired, live)
predicted = apply_merge_patch(live, patch)
```

## Managed fields

`gitopskit.managedfields` handles the entries of `metadata.managedFields`.

- `ManagedFieldsEntry.from_dict(data)` and `to_dict()` convert between an
  entry and its JSON form.
- `decode_managed_fields(entries)` checks each entry and returns a `Managed`.
  Its `fields` maps a manager identifier to that manager's field set, API
  version and whether it was applied. Its `times` holds each operation's
  time. An entry is rejected if its operation is not `Apply` or `Update`, if
  its apiVersion is empty, if its fieldsType is not `FieldsV1`, or if its
  field set is malformed. Rejected entries raise `ManagedFieldsError`.
- `build_manager_identifier(entry)` builds the identifier as compact JSON of
  the entry, without its fields, field type and time. Appliers also leave
  out their API version.
- `encode_managed_fields(managed)` turns a `Managed` back into entries sorted
  by `sort_managed_fields`. It returns `None` when there are none.
- `sort_managed_fields(entries)` orders entries by operation, time in
  seconds, manager, API version and subresource.

## Manifest helpers

`gitopskit.objects` has these helpers:

- `GroupVersionKind.from_object(obj)` reads a resource's group, version and
  kind.
- `nested_get`, `set_nested` and `remove_nested` read, write and delete
  values at a path of keys.
- `get_annotations(obj)` returns the object's annotations.
- `remove_map_fields(config, live)` and `remove_list_fields(config, live)`
  trim `live` down to the fields that `config` has.

`gitopskit.manifest` has these helpers:

- `get_last_applied_config(live)` parses the
  `kubectl.kubernetes.io/last-applied-configuration` annotation. It raises
  `ManifestError` if the annotation is not a JSON object.
- `strip_type_information(obj)` re-encodes through JSON, so whole-valued
  floats become ints.
- `remove_namespace_annotation(obj)` returns a copy without
  `metadata.namespace` and without empty annotations.
- `statefulset_workaround(orig, live)` drops server-defaulted fields from a
  live StatefulSet's `volumeClaimTemplates`.

## What this package does not do

- It does not compare a desired manifest with a live object as a whole. The
  merge-patch and manifest helpers are pieces such a comparison can be built
  from, but there is no ready-made diff function or diff result type.
- It does not normalize particular kinds before comparison. That means no
  folding of Secret `stringData`, no clean-up of Role rules and no sorting of
  Endpoints.
- It does not mask Secret values.
- It knows no Kubernetes schemas. It has no strategic merge patch, no field
  defaulting and no server-side apply merging; merge patches are plain JSON
  merge patches.
- It does not talk to a cluster and has no command-line program.