# azkarp

Building blocks for node autoscaling of Kubernetes clusters on Azure.

It has two parts. The first is a set of in-memory fakes of the Azure APIs an
autoscaler talks to, so code can be tested without a cloud account. The second
is a set of controllers that keep node claims and virtual machines in line,
working against an in-memory cluster client.

## Installation

```
pip install azkarp
```

With the test dependencies:

```
pip install "azkarp[test]"
```

## Fake Azure APIs

Each fake keeps its resources in memory and can record how it was called.

- `azkarp.virtualmachines.VirtualMachinesAPI`: `begin_create_or_update`,
  `begin_update`, `get` and `begin_delete` for VMs, stored in `instances` by
  resource ID. `get` raises `azkarp.compute.ResourceNotFoundError` for a
  missing VM.
- `azkarp.networkinterfaces.NetworkInterfacesAPI`: network interfaces;
  `get` raises `NotFoundError` for a missing one.
- `azkarp.loadbalancers.LoadBalancersAPI`: `store`, `get` and `list_pages`,
  which yields one page sorted by ID.
- `azkarp.extensions.VirtualMachineExtensionsAPI`: VM extension creation;
  extensions are not kept.
- `azkarp.pricing.PricingAPI`: hands the configured `ProductsPricePage` to a
  callback, or raises `NoPricingDataError` when none is set.
- `azkarp.resourcegraph.AzureResourceGraphAPI`: answers the query from
  `list_query(resource_group)` with the stored VMs that carry the node pool tag,
  as JSON documents.
- `azkarp.imageversions.CommunityGalleryImageVersionsAPI`: yields one page of
  the image versions appended to `image_versions`.

Resource ID helpers: `azkarp.compute.mk_vm_id`,
`azkarp.networkinterfaces.mk_network_interface_id`,
`azkarp.loadbalancers.make_load_balancer_id`,
`azkarp.loadbalancers.make_backend_address_pool_id` and
`azkarp.extensions.mk_vm_extension_id`.

Operations go through a `MockedFunction` or `MockedLRO` from `azkarp.mocks`.
These let a test:

- return a fixed value by setting `output`;
- raise an error a set number of times with `error.set(err, max_calls(n))`
  (`azkarp.atomic.max_calls`; zero or less means every time);
- fail a long-running call at its start with `begin_error` (`MockedLRO` only);
- read the recorded inputs from `called_with_input`;
- count calls with `calls()`, `successful_calls()` and `failed_calls()`.

A long-running operation returns a finished `Poller`; its `result()` gives the
value or raises the error.

Call `reset()` on a fake between tests, or state from one test carries into the
next.

```python
from azkarp.atomic import max_calls
from azkarp.compute import VirtualMachine, mk_vm_id
from azkarp.virtualmachines import VirtualMachinesAPI

api = VirtualMachinesAPI()
vm = api.begin_create_or_update("my-rg", "vm-a", VirtualMachine()).result()
assert vm.id == mk_vm_id("my-rg", "vm-a")

# The next two creations return a poller whose result() raises.
api.create_or_update_behavior.error.set(RuntimeError("boom"), max_calls(2))
```

The containers in `azkarp.atomic` (`AtomicPtr`, `AtomicError`,
`AtomicPtrStack`, `AtomicPtrSlice`) are lock-guarded and copy values in and
out.

## Controllers

`azkarp.controllers.new_controllers(kube_client, cloud_provider, instance_provider)`
returns three controllers:

- `GarbageCollectionController.reconcile()` deletes cloud instances that no
  node claim owns, once they are more than five minutes old and were not linked
  recently; the Kubernetes node with the same provider ID is deleted too. It
  asks to be run again after 10 seconds for its first 20 runs, then after 2
  minutes. Failures are raised together as an `ExceptionGroup`.
- `LinkController.reconcile()` creates a node claim, from the node pool's
  template, for each instance labelled with a node pool that exists and has no
  claim yet. The claim carries the linked annotation, and the provider ID is
  remembered for one minute in `cache`.
- `InPlaceUpdateController.reconcile(nodeclaim, settings)` compares a hash of
  `Settings.node_identities` with the hash annotation on the node claim. If
  they differ, it adds the missing user-assigned identities to the VM (it
  never removes any) and writes the new hash to the claim.

`azkarp.inplaceupdate` also exposes `hash_from_vm`, `hash_from_nodeclaim` and
`calculate_vm_patch`.

Cluster objects (`NodeClaim`, `Node`, `NodePool`) and the in-memory
`KubeClient` live in `azkarp.cluster`.

## Metrics

`azkarp.metrics.IMAGE_SELECTION_ERROR_COUNT` is a `CounterVec` labelled by
image family and registered in `azkarp.metrics.REGISTRY`:

```python
from azkarp.metrics import IMAGE_SELECTION_ERROR_COUNT

IMAGE_SELECTION_ERROR_COUNT.labels("Ubuntu2204").inc()
assert IMAGE_SELECTION_ERROR_COUNT.collect_count() == 1
```

## What it does not include

There is no cloud provider and no instance provider in the package; the
controllers take them as arguments. A cloud provider needs `list()` returning
`NodeClaim` objects, `delete(nodeclaim)` and `link(nodeclaim)`, raising
`azkarp.cluster.NodeClaimNotFoundError` for a missing instance. An instance
provider needs `get(vm_name)` and `update(vm_name, update)`. Provider IDs are
expected to start with `azure://` and end with the VM name.

The package does not talk to a real Kubernetes API server or to Azure, runs no
controller loop of its own, and has no command-line program; callers invoke
`reconcile` themselves.

## Running the tests

```
pytest
```