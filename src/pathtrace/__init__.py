"""BVH-accelerated stochastic path tracer for spheres, built on Taichi.

This package renders scenes of spheres with Monte Carlo path tracing:
- Bounding volume hierarchy with randomized split axes
- Lambertian, metal and dielectric materials
- Thin-lens camera with defocus blur
- Samples split across parallel workers, merged into one image
- PPM (P3) and PNG output

Subpackages:
    core: Rays, random sampling, the radiance integrator and the renderer
    geometry: Bounding boxes, spheres and the BVH
    materials: Scattering models
    scene: Scene storage, material bookkeeping and ready-made scenes
    camera: Camera model with ray generation
    preview: Image export utilities

Modules that declare Taichi fields must be imported after ``ti.init``;
see ``pathtrace.config.init_taichi``.
"""

__version__ = "0.1.0"
