from drapemesh import drapemesh

mesh = drapemesh(
    vector_path="data/test_polygon.geojson",
    raster_paths=[
        "data/N045E012/ALPSMLC30_N045E012_DSM.tif",
        "data/N046E012/ALPSMLC30_N046E012_DSM.tif"
    ],
    property_key="reg_code",
    property_value="6",
    density=5000,
    densify=250.0,
    method="nearest",
    target_crs="EPSG:32633",
    resolution=100,
    out_path="output/region_6.npz",
    verbose=True
)

print(f"{mesh.n_vertices} vertices, {mesh.n_triangles} triangles")
