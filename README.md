# arohcp-tooling

A library of helpers used when deploying hosted OpenShift clusters on Azure:

- `arohcp_tooling.templatize.naming`: Azure resource names with a short
  SHA-256 suffix, checked against each service's length limit.
- `arohcp_tooling.templatize.gotemplate`: a compact engine for the
  `{{ ... }}` text-template language.
- `arohcp_tooling.templatize.output`: JSON and YAML pretty-printing.
- `arohcp_tooling.mcerepkg.customize`: turns plain Kubernetes manifests
  (as dictionaries) into Helm chart templates with parameterised
  namespaces and image registries.
- `arohcp_tooling.mcerepkg.rukpak_util`: stable object hashing, map
  merging, tar.gz archiving of a directory and safe file opening.
- `arohcp_tooling.imagesync.repository`: the newest tags of an image on
  Quay or on any OCI registry.
- `arohcp_tooling.ocm.internalid`: parsing of cluster-service resource
  paths for clusters and node pools.

## Installation

```console
pip install arohcp-tooling
```

Python 3.10 or newer is required. To run the test suite:

```console
pip install "arohcp-tooling[test]"
pytest
```

## Resource names

```python
from arohcp_tooling.templatize.naming import (
    azure_event_grid_name, azure_key_vault_name, azure_postgres_name, suffixed_name,
)

azure_key_vault_name("kv", 5, "uksouth", "1")   # "kv-" plus five hex digits
azure_key_vault_name("kv", 5)                   # "kv": no suffix without arguments
suffixed_name("prefix", "-", 10, 3, "arg1")     # "prefix-84f"
```

The suffix is the first hex digits of the SHA-256 of the joined arguments.
Event Grid and Key Vault names may be at most 24 characters, PostgreSQL
names at most 60; a longer name raises `NamingError`.

## Text templates

```python
from arohcp_tooling.templatize.gotemplate import Template, render

render("{{ .ctx.region }}-{{ .ctx.stamp }}", {"ctx": {"region": "uksouth", "stamp": "1"}})
# "uksouth-1"

template = Template(
    "params",
    "param kv = '{{ index . \"region_maestro_keyvault\" }}'",
    functions={"upper": str.upper},
)
template.render({"region_maestro_keyvault": "kv"})   # "param kv = 'kv'"
```

Supported: text, `{{/* comments */}}`, `{{-` / `-}}` whitespace trimming,
field chains (`.a.b`, `$`), string, raw-string, number, `true`, `false`
and `nil` literals, function calls, pipelines (`|`), parenthesised
sub-expressions, and `if` / `else` / `else if` / `range` / `with` / `end`.
Built-in functions are `index`, `len`, `not`, `and`, `or`, `eq`, `ne`,
`lt`, `le`, `gt`, `ge`, `print`, `println` and `printf`; extra functions
are passed as a mapping. A field missing from a mapping prints
`<no value>`, while `index` of a missing key gives an empty string.
`define`, `template`, `block`, `break` and `continue` are not supported.
Parse and execution failures raise `TemplateError`.

## Pretty-printing

`pretty_print_json(value)` gives two-space indented JSON with sorted keys
(`<`, `>` and `&` escaped as `\u003c`, `\u003e`, `\u0026`);
`pretty_print_yaml(value)` gives block-style YAML with sorted keys.

## Chart manifests

```python
from arohcp_tooling.mcerepkg.customize import (
    customize_manifests, load_scaffold_templates, sanity_check,
)

sanity_check(manifests)        # raises SanityCheckError listing every problem
extra = load_scaffold_templates("scaffold/")
customized, values = customize_manifests(manifests + extra)
```

`sanity_check` requires the `multicluster-engine-operator` Deployment with
at least one `OPERAND_IMAGE_*` environment variable. `customize_manifests`
returns new objects in which:

- every namespaced object's namespace becomes `{{ .Release.Namespace }}`,
  as do the service-account subjects of RoleBindings and
  ClusterRoleBindings;
- every Deployment container image, and the operand image variables of the
  operator Deployment, have their registry replaced by
  `{{ .Values.imageRegistry }}`;
- annotations containing `openshift.io`, `operatorframework.io`, `olm`,
  `alm-examples` or `createdAt` are dropped, and an empty annotations
  field is removed.

The returned values are the chart parameters as a nested mapping, for
example `{"imageRegistry": ""}`. `load_scaffold_templates` reads every
`.yaml` / `.yml` file below a directory, in path order.

## Bundle helpers

`deep_hash_object(obj)` returns base36 of the SHA-224 of the object's
compact, key-sorted JSON. `merge_maps(*maps)` merges mappings, later ones
winning. `fs_to_tar_gz(fileobj, root)` writes a directory tree as a
gzipped tar with owner information cleared and symbolic links skipped.
`open_regular_file(root, name)` opens a file below `root` for binary
reading and reports directories, links and special files as not found.

## Image tags

```python
from arohcp_tooling.imagesync.repository import OCIRegistry, QuayRegistry

quay = QuayRegistry(bearer_token="token", number_of_tags=10, request_timeout=30)
tags = quay.get_tags("acm-d/rhtap-hypershift-operator")

oci = OCIRegistry(base_url="registry.k8s.io", number_of_tags=5, request_timeout=30)
newest = oci.get_tags("external-dns/external-dns")
```

`QuayRegistry` pages through `https://quay.io` (100 tags a page, at most
99 pages), skips `latest` and stops once `number_of_tags` tags are found.
`OCIRegistry` prefixes the host with `https://`, reads `/v2/<image>/tags/list`
and returns the tags of the `number_of_tags` most recently uploaded
manifests (see `get_newest_tags`). Failed requests, non-200 answers and
unreadable replies raise `RegistryError`.

## Cluster-service ids

```python
from arohcp_tooling.ocm.internalid import InternalID, generate_cluster_href

cluster = InternalID(generate_cluster_href("abc"))
cluster.kind()   # "Cluster"
cluster.id()     # "abc"

pool = InternalID("/api/clusters_mgmt/v1/clusters/abc/node_pools/def")
pool.kind()            # "NodePool"
pool.cluster_path()    # "/api/clusters_mgmt/v1/clusters/abc"
pool.node_pool_path()  # the node pool path itself
```

Paths are lower-cased; anything other than a v1 cluster or node pool path
raises `InvalidInternalIDError`, as does `node_pool_path()` on a cluster.

## What this package does not do

It installs no command-line programs. It does not read layered
configuration files or write rendered templates to disk by itself, does
not unpack OLM bundle images or convert them to manifests, and does not
assemble or save Helm charts; it provides the building blocks above for
those steps. It has no client for Azure Container Registry and does not
talk to the cluster service, only parses its resource paths.